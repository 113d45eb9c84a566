"""Parser for the Videohub status dump.

The hub answers with marker lines ("INPUT LABELS:", "VIDEO OUTPUT ROUTING:",
...) followed by records separated by newlines or periods. Everything here
works on a complete, already drained text buffer and never raises for
malformed records: they are dropped and the rest is kept.
"""
import logging
import re
from typing import Iterable

from .schema import UNNAMED_LABEL

logger = logging.getLogger(__name__)

# Single-byte request codes
CMD_PREAMBLE = b"\x00"
CMD_INPUT_LABELS = b"\x01"
CMD_OUTPUT_LABELS = b"\x02"
CMD_ROUTING = b"\x03"

INPUT_LABELS = "INPUT LABELS:"
OUTPUT_LABELS = "OUTPUT LABELS:"
VIDEO_OUTPUT_ROUTING = "VIDEO OUTPUT ROUTING:"
VIDEO_OUTPUT_LOCKS = "VIDEO OUTPUT LOCKS:"
END_PRELUDE = "END PRELUDE:"

END_MARKERS = (
    OUTPUT_LABELS,
    VIDEO_OUTPUT_ROUTING,
    VIDEO_OUTPUT_LOCKS,
    END_PRELUDE,
    INPUT_LABELS,
)

TOKEN_DELIMITERS = re.compile(r"[\r\n.]")
LABEL_PATTERN = re.compile(r"\s*(\d+)(.*)", re.DOTALL)
ROUTE_PATTERN = re.compile(r"\s*(\d+)\s+(\d+)\s*")


def extract_section(text: str, start_marker: str, end_markers: Iterable[str]) -> str:
    """
    Return the text between `start_marker` and the nearest end marker.

    Only the first occurrence of `start_marker` counts. The section ends at
    the earliest end marker found after it, or at the end of the text.

    Returns:
        Section content, or "" if `start_marker` is absent
    """
    start = text.find(start_marker)
    if start == -1:
        return ""
    start += len(start_marker)

    end = len(text)
    for marker in end_markers:
        pos = text.find(marker, start)
        if pos != -1 and pos < end:
            end = pos

    return text[start:end]


def split_tokens(text: str) -> list[str]:
    """
    Split section text into record tokens.

    Examples:
        "INPUT1\\r\\nINPUT2.INPUT3\\n" -> ["INPUT1", "INPUT2", "INPUT3"]
        "0 1.\\n\\n1 0" -> ["0 1", "1 0"]
    """
    return [tok for tok in TOKEN_DELIMITERS.split(text) if tok]


def decode_labels(tokens: Iterable[str]) -> dict[int, str]:
    """
    Decode "<index> <label>" tokens into an index -> label mapping.

    Tokens that do not start with a decimal index are dropped. An empty
    label becomes "(unnamed)". A repeated index keeps the last label.
    """
    labels: dict[int, str] = {}

    for tok in tokens:
        match = LABEL_PATTERN.fullmatch(tok)
        if not match:
            logger.debug(f"Dropping label token without index: {tok!r}")
            continue
        label = match.group(2).strip()
        labels[int(match.group(1))] = label or UNNAMED_LABEL

    return labels


def decode_routing(tokens: Iterable[str]) -> dict[int, int]:
    """
    Decode "<output> <input>" tokens into an output -> input mapping.

    A token must hold exactly two integers; anything else is dropped
    without affecting the tokens around it.
    """
    routing: dict[int, int] = {}

    for tok in tokens:
        match = ROUTE_PATTERN.fullmatch(tok)
        if not match:
            logger.debug(f"Dropping routing token: {tok!r}")
            continue
        routing[int(match.group(1))] = int(match.group(2))

    return routing


def device_info(preamble: str) -> list[str]:
    """Non-empty preamble lines before the first label section."""
    lines = []
    for line in preamble.splitlines():
        if INPUT_LABELS in line:
            break
        line = line.strip()
        if line:
            lines.append(line)
    return lines


def route_command(output_index: int, input_index: int) -> str:
    """ASCII block that routes one output to one input."""
    return f"{VIDEO_OUTPUT_ROUTING}\n{output_index} {input_index}\n\n"
