"""Hub Engine - read, compare and apply Videohub routing.

The hub engine turns the hub's unframed ASCII status dump into a
structured DeviceState and reconciles two states:
- Section extraction, tokenizing and decoding of the dump
- Per-output comparison of a preset against the live hub
- Per-crosspoint routing writes with independent outcomes

Usage:
    from mcp_videohub.hub_engine.engine import HubSession

    session = HubSession(inventory.get_hub("videohub-40x40"))
    await session.read_hub()
    session.load_preset("sunday-service")
    result = await session.apply_preset(dry_run=True)
"""

from .schema import (
    DeviceState,
    FetchResult,
    CompareRow,
    ApplyOptions,
    ApplyResult,
    RouteOutcome,
    PreconditionError,
    UNNAMED_LABEL,
    UNKNOWN_LABEL,
)
from .parser import (
    extract_section,
    split_tokens,
    decode_labels,
    decode_routing,
    device_info,
    route_command,
    END_MARKERS,
)
from .fetcher import fetch_device_state, decode_state
from .diff import compare_states, differing_outputs, summarize_compare
from .executor import RoutingExecutor

__all__ = [
    # Schema classes
    "DeviceState",
    "FetchResult",
    "CompareRow",
    "ApplyOptions",
    "ApplyResult",
    "RouteOutcome",
    "PreconditionError",
    "UNNAMED_LABEL",
    "UNKNOWN_LABEL",
    # Parser
    "extract_section",
    "split_tokens",
    "decode_labels",
    "decode_routing",
    "device_info",
    "route_command",
    "END_MARKERS",
    # Components
    "fetch_device_state",
    "decode_state",
    "compare_states",
    "differing_outputs",
    "summarize_compare",
    "RoutingExecutor",
]
