"""Schema definitions for the hub engine.

Defines the Device State snapshot and the result types produced by
fetch, compare and apply.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

UNNAMED_LABEL = "(unnamed)"
UNKNOWN_LABEL = "(unknown)"
NONE_LABEL = "(none)"


class PreconditionError(Exception):
    """Operation invoked without its prerequisite state."""
    pass


@dataclass
class DeviceState:
    """Snapshot of a hub's labels and routing.

    Indices are 0-based and kept exactly as reported; nothing limits the
    model to a particular matrix size.
    """
    input_labels: dict[int, str] = field(default_factory=dict)
    output_labels: dict[int, str] = field(default_factory=dict)
    routing: dict[int, int] = field(default_factory=dict)  # output -> input
    description: str = ""
    source: str = ""  # videohub://host:port or preset file path

    @property
    def is_populated(self) -> bool:
        """True once a fetch or load has filled this state."""
        return bool(self.source)

    def input_label(self, index: Optional[int]) -> str:
        if index is None:
            return NONE_LABEL
        return self.input_labels.get(index, UNKNOWN_LABEL)

    def output_label(self, index: int) -> str:
        return self.output_labels.get(index, UNKNOWN_LABEL)

    def replace_with(self, other: "DeviceState") -> None:
        """Replace every field with copies of `other`'s (never merges)."""
        self.input_labels = dict(other.input_labels)
        self.output_labels = dict(other.output_labels)
        self.routing = dict(other.routing)
        self.description = other.description
        self.source = other.source

    def reset(self) -> None:
        self.replace_with(DeviceState())

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dict (string keys, 0-based)."""
        return {
            "description": self.description,
            "source": self.source,
            "inputs": {str(k): v for k, v in sorted(self.input_labels.items())},
            "outputs": {str(k): v for k, v in sorted(self.output_labels.items())},
            "routing": {str(k): v for k, v in sorted(self.routing.items())},
        }


@dataclass
class FetchResult:
    """Result of reading a hub."""
    state: DeviceState
    preamble: str = ""
    raw: str = ""  # all four responses, newline-joined in command order


# --- Compare Results ---

@dataclass
class CompareRow:
    """Routing of one output in a preset versus the live hub."""
    output_index: int
    output_label: str
    preset_input: Optional[int]
    preset_input_label: str
    live_input: Optional[int]
    live_input_label: str
    differs: bool

    def to_dict(self) -> dict:
        return {
            "output_index": self.output_index,
            "output_label": self.output_label,
            "preset_input": self.preset_input,
            "preset_input_label": self.preset_input_label,
            "live_input": self.live_input,
            "live_input_label": self.live_input_label,
            "differs": self.differs,
        }


# --- Apply Results ---

@dataclass
class ApplyOptions:
    """Options for pushing a preset's routing."""
    dry_run: bool = False
    drain_initial: bool = True
    drain_responses: bool = True
    initial_timeout: float = 0.5
    followup_timeout: float = 0.08


@dataclass
class RouteOutcome:
    """Outcome of writing one crosspoint."""
    output_index: int
    input_index: int
    command: str
    sent: bool = False
    error: Optional[str] = None
    response: str = ""


@dataclass
class ApplyResult:
    """Result of applying a preset's routing to a hub."""
    dry_run: bool = False
    outcomes: list[RouteOutcome] = field(default_factory=list)
    initial_response: str = ""

    @property
    def sent_count(self) -> int:
        return sum(1 for o in self.outcomes if o.sent)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.error)

    @property
    def success(self) -> bool:
        if self.dry_run:
            return True
        return all(o.sent for o in self.outcomes)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "sent": self.sent_count,
            "failed": self.failed_count,
            "outcomes": [
                {
                    "output_index": o.output_index,
                    "input_index": o.input_index,
                    "sent": o.sent,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
        }


@dataclass
class AuditEntry:
    """Audit log entry for one apply run."""
    timestamp: datetime
    hub: str
    preset: str
    dry_run: bool = False
    success: bool = False
    changes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
