"""Diff engine for comparing a stored preset with the live hub.

Works per output: every output routed in either state gets one row.
"""
from .schema import (
    DeviceState,
    CompareRow,
    PreconditionError,
    UNKNOWN_LABEL,
)


def compare_states(preset: DeviceState, live: DeviceState) -> list[CompareRow]:
    """
    Compare the routing of a preset with the live hub state.

    Args:
        preset: Loaded preset (must have routing)
        live: State fetched from the hub (must have been read)

    Returns:
        One CompareRow per output index in either routing table, ascending

    Raises:
        PreconditionError: If no preset is loaded or the hub was never read
    """
    if not preset.routing:
        raise PreconditionError("No preset loaded. Load a preset first.")
    if not live.is_populated:
        raise PreconditionError("Videohub has not been read yet. Read the Videohub first.")

    rows = []
    for out_idx in sorted(set(preset.routing) | set(live.routing)):
        preset_in = preset.routing.get(out_idx)
        live_in = live.routing.get(out_idx)

        out_label = preset.output_labels.get(out_idx) or live.output_labels.get(out_idx)

        rows.append(CompareRow(
            output_index=out_idx,
            output_label=out_label or UNKNOWN_LABEL,
            preset_input=preset_in,
            preset_input_label=preset.input_label(preset_in),
            live_input=live_in,
            live_input_label=live.input_label(live_in),
            differs=preset_in != live_in,
        ))

    return rows


def differing_outputs(rows: list[CompareRow]) -> list[int]:
    """Output indices whose routing differs."""
    return [row.output_index for row in rows if row.differs]


def summarize_compare(rows: list[CompareRow]) -> str:
    """
    Create a one-line summary of a comparison.

    Useful for logging and tool responses.
    """
    diffs = differing_outputs(rows)
    if not diffs:
        return f"Preset matches hub ({len(rows)} outputs compared)"

    listed = ", ".join(str(i + 1) for i in diffs[:10])
    if len(diffs) > 10:
        listed += f", ... ({len(diffs) - 10} more)"
    return f"{len(diffs)} of {len(rows)} outputs differ: {listed}"
