"""State fetcher - read labels and routing from a connected hub."""
import logging

from ..devices.base import SendError
from ..utils.logging_config import timed
from .parser import (
    CMD_PREAMBLE,
    CMD_INPUT_LABELS,
    CMD_OUTPUT_LABELS,
    CMD_ROUTING,
    INPUT_LABELS,
    OUTPUT_LABELS,
    VIDEO_OUTPUT_ROUTING,
    END_MARKERS,
    extract_section,
    split_tokens,
    decode_labels,
    decode_routing,
)
from .schema import DeviceState, FetchResult

logger = logging.getLogger(__name__)


async def _exchange(
    connection,
    command: bytes,
    initial_timeout: float,
    followup_timeout: float,
) -> str:
    """Send one request and drain its response."""
    try:
        await connection.send_command(command)
    except SendError as e:
        logger.warning(f"Request {command!r} not sent: {e}")
        return ""

    data = await connection.receive_until_quiet(initial_timeout, followup_timeout)
    logger.debug(f"Request {command!r}: {len(data)} bytes")
    return data.decode("utf-8", errors="replace")


def _section(dedicated: str, combined: str, marker: str) -> str:
    """
    Pick the text for one section.

    The dedicated response wins when it has content; if it carries the
    marker it is narrowed to that section. A dedicated response that lacks
    its marker but carries another section's marker is the tail of an
    earlier answer, so the section is cut out of the combined dump instead.
    """
    if dedicated:
        if marker in dedicated:
            return extract_section(dedicated, marker, END_MARKERS)
        if not any(other in dedicated for other in END_MARKERS if other != marker):
            return dedicated
        logger.debug(f"Response for {marker!r} belongs to another section, using combined dump")
    return extract_section(combined, marker, END_MARKERS)


def decode_state(
    preamble: str,
    inputs: str,
    outputs: str,
    routing: str,
    source: str = "",
) -> FetchResult:
    """Build a fresh DeviceState from the four raw responses."""
    combined = "\n".join([preamble, inputs, outputs, routing])

    state = DeviceState(
        input_labels=decode_labels(split_tokens(_section(inputs, combined, INPUT_LABELS))),
        output_labels=decode_labels(split_tokens(_section(outputs, combined, OUTPUT_LABELS))),
        routing=decode_routing(split_tokens(_section(routing, combined, VIDEO_OUTPUT_ROUTING))),
        source=source,
    )

    return FetchResult(state=state, preamble=preamble, raw=combined)


@timed("fetch_state")
async def fetch_device_state(
    connection,
    initial_timeout: float = 0.5,
    followup_timeout: float = 0.08,
    source: str = "",
) -> FetchResult:
    """
    Read preamble, labels and routing over an open connection.

    Partial or garbled responses produce a best-effort (possibly empty)
    state; this never fails on content.

    Args:
        connection: Open connection with send_command/receive_until_quiet
        initial_timeout: Wait for the first bytes of each response
        followup_timeout: Quiet period that ends a response
        source: Origin recorded on the returned state

    Returns:
        FetchResult with the new state, the preamble and the combined dump
    """
    def exchange(command: bytes):
        return _exchange(connection, command, initial_timeout, followup_timeout)

    preamble = await exchange(CMD_PREAMBLE)
    inputs = await exchange(CMD_INPUT_LABELS)
    outputs = await exchange(CMD_OUTPUT_LABELS)
    routing = await exchange(CMD_ROUTING)

    result = decode_state(preamble, inputs, outputs, routing, source=source)

    logger.info(
        f"Fetched hub state: {len(result.state.input_labels)} inputs, "
        f"{len(result.state.output_labels)} outputs, "
        f"{len(result.state.routing)} routes"
    )
    return result
