"""Plain-text reports for hub states, comparisons and apply runs.

Numbers shown to people are 1-based, matching the hub's front panel.
"""
import math

from .parser import device_info
from .schema import DeviceState, CompareRow, ApplyResult

ROWS_PER_COLUMN = 10


def format_labels(labels: dict[int, str], title: str) -> str:
    """
    Labels in columns of ten, read top to bottom.

    Small hubs (up to 20 labels) get two columns, larger ones four, with
    extra rows added when four columns of ten are not enough.
    """
    lines = [f"{title}:"]
    if not labels:
        lines.append("  (none)")
        return "\n".join(lines)

    indices = sorted(labels)
    cols = 2 if len(indices) <= 20 else 4
    rows = max(ROWS_PER_COLUMN, math.ceil(len(indices) / cols))
    header = "InpNr InpName" if title == "Inputs" else "OutpNr OutpName"
    width = max(max(len(f"{i + 1} {labels[i]}") for i in indices), len(header)) + 2
    used_cols = math.ceil(len(indices) / rows)
    lines.append("".join(f"{header:<{width}}" for _ in range(used_cols)).rstrip())
    lines.append(" ".join("-" * (width - 1) for _ in range(used_cols)))

    for r in range(rows):
        cells = []
        for c in range(used_cols):
            pos = r + c * rows
            if pos < len(indices):
                idx = indices[pos]
                cells.append(f"{f'{idx + 1} {labels[idx]}':<{width}}")
        if cells:
            lines.append("".join(cells).rstrip())

    return "\n".join(lines)


def format_routing(state: DeviceState) -> str:
    """Routing table with output and input names."""
    out_width = max((len(v) for v in state.output_labels.values()), default=8) + 2
    in_width = max((len(v) for v in state.input_labels.values()), default=8) + 2

    lines = ["Routing:"]
    lines.append(f"{'OutpNr':<8}{'OutpName':<{out_width}}{'InpNr':<8}{'InpName'}")
    lines.append("-" * (16 + out_width + in_width))

    if not state.routing:
        lines.append("  (no routing)")

    for out_idx, in_idx in sorted(state.routing.items()):
        lines.append(
            f"{out_idx + 1:<8}{state.output_label(out_idx):<{out_width}}"
            f"{in_idx + 1:<8}{state.input_label(in_idx)}"
        )

    return "\n".join(lines)


def format_state(state: DeviceState, title: str = "Videohub status") -> str:
    """Inputs, outputs and routing of a state."""
    parts = [f"--- {title} ---"]
    if state.description:
        parts.append(f"Description: {state.description}")
    parts.append(format_labels(state.input_labels, "Inputs"))
    parts.append(format_labels(state.output_labels, "Outputs"))
    parts.append(format_routing(state))
    return "\n\n".join(parts)


def format_full(state: DeviceState, preamble: str) -> str:
    """Device info from the preamble followed by the full state."""
    info = device_info(preamble) or ["(no device info)"]
    return "\n\n".join([
        "Device Info:\n" + "\n".join(info),
        format_state(state, title="Videohub full display"),
    ])


def _input_cell(index, label: str) -> str:
    if index is None:
        return label
    return f"{index + 1} {label}"


def format_compare(rows: list[CompareRow]) -> str:
    """Comparison table; differing outputs are marked with '*'."""
    lines = ["=== Comparison: Loaded Preset vs Current Videohub ===", ""]
    lines.append(f"{'Output':<24}{'Preset Input':<24}{'Hub Input':<24}Diff")
    lines.append("-" * 76)

    for row in rows:
        output = f"{row.output_index + 1} {row.output_label}"
        lines.append(
            f"{output:<24}"
            f"{_input_cell(row.preset_input, row.preset_input_label):<24}"
            f"{_input_cell(row.live_input, row.live_input_label):<24}"
            f"{'*' if row.differs else ''}"
        )

    lines.append("")
    lines.append("Legend:")
    lines.append("  (blank) = preset matches hub")
    lines.append("  *       = difference")
    return "\n".join(lines)


def format_apply(result: ApplyResult, preset: DeviceState) -> str:
    """Per-output feedback for an apply run."""
    prefix = "[DRY-RUN] " if result.dry_run else ""
    lines = []

    for o in result.outcomes:
        route = (
            f"Output {o.output_index + 1} ({preset.output_label(o.output_index)}) "
            f"<- Input {o.input_index + 1} ({preset.input_label(o.input_index)})"
        )
        if o.error:
            lines.append(f"  FAILED {route}: {o.error}")
        else:
            lines.append(f"  {prefix}{route}")

    if result.dry_run:
        lines.append(f"{len(result.outcomes)} routes would be sent.")
    elif result.success:
        lines.append(f"Preset applied to Videohub ({result.sent_count} routes).")
    else:
        lines.append(
            f"Preset partially applied: {result.sent_count} sent, "
            f"{result.failed_count} failed."
        )
    return "\n".join(lines)
