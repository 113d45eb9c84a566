"""Executor for pushing a preset's routing to a hub.

Each crosspoint is written as its own command. The hub has no
transactions, so a failed write is recorded for that output only and the
remaining outputs are still sent.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..devices.base import SendError
from ..utils.logging_config import timed
from .parser import route_command
from .schema import (
    DeviceState,
    ApplyOptions,
    ApplyResult,
    RouteOutcome,
    AuditEntry,
    PreconditionError,
)

logger = logging.getLogger(__name__)


class RoutingExecutor:
    """Write preset routing to a connected hub, one crosspoint at a time."""

    def __init__(self, audit_log_path: Optional[str] = None):
        """
        Initialize executor.

        Args:
            audit_log_path: Path to a JSON-lines audit log (optional)
        """
        self.audit_log_path = audit_log_path

    def plan(self, preset: DeviceState) -> list[RouteOutcome]:
        """One pending outcome per routing entry, ascending output index."""
        return [
            RouteOutcome(
                output_index=out_idx,
                input_index=in_idx,
                command=route_command(out_idx, in_idx),
            )
            for out_idx, in_idx in sorted(preset.routing.items())
        ]

    @timed("apply_routing")
    async def apply(
        self,
        connection,
        preset: DeviceState,
        options: Optional[ApplyOptions] = None,
        hub: str = "",
        preset_name: str = "",
    ) -> ApplyResult:
        """
        Send every routing entry of `preset` over `connection`.

        Only routing is written; labels stay untouched on the hub.

        Args:
            connection: Open connection (ignored for dry runs)
            preset: State whose routing is applied
            options: Dry-run and draining options
            hub: Hub identifier for the audit log
            preset_name: Preset name for the audit log

        Returns:
            ApplyResult with one outcome per output

        Raises:
            PreconditionError: If the preset has no routing
        """
        if not preset.routing:
            raise PreconditionError("No preset loaded. Load a preset first.")

        options = options or ApplyOptions()
        result = ApplyResult(dry_run=options.dry_run, outcomes=self.plan(preset))

        if options.dry_run:
            logger.info(f"DRY RUN: {len(result.outcomes)} routes would be sent")
            return result

        try:
            if options.drain_initial:
                initial = await connection.receive_until_quiet(
                    options.initial_timeout, options.followup_timeout
                )
                result.initial_response = initial.decode("utf-8", errors="replace")

            for outcome in result.outcomes:
                await self._send_route(connection, outcome, options)
        finally:
            await self._write_audit(self._audit_entry(result, hub, preset_name))

        logger.info(
            f"Applied preset: {result.sent_count} sent, {result.failed_count} failed"
        )
        return result

    async def _send_route(
        self,
        connection,
        outcome: RouteOutcome,
        options: ApplyOptions,
    ) -> None:
        """Send one crosspoint and record what happened."""
        try:
            await connection.send_command(outcome.command.encode("ascii"))
        except SendError as e:
            outcome.error = str(e)
            logger.error(f"Failed sending output {outcome.output_index}: {e}")
            return

        outcome.sent = True
        logger.debug(f"Output {outcome.output_index} <- input {outcome.input_index}")

        if options.drain_responses:
            data = await connection.receive_until_quiet(
                options.initial_timeout, options.followup_timeout
            )
            outcome.response = data.decode("utf-8", errors="replace")

    def _audit_entry(self, result: ApplyResult, hub: str, preset_name: str) -> AuditEntry:
        return AuditEntry(
            timestamp=datetime.now(timezone.utc),
            hub=hub,
            preset=preset_name,
            dry_run=result.dry_run,
            success=result.success,
            changes=[
                f"output {o.output_index} <- input {o.input_index}"
                for o in result.outcomes if o.sent
            ],
            errors=[
                f"output {o.output_index}: {o.error}"
                for o in result.outcomes if o.error
            ],
        )

    async def _write_audit(self, entry: AuditEntry) -> None:
        """Append an audit entry to the log file."""
        if not self.audit_log_path:
            return

        try:
            log_path = Path(self.audit_log_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            log_entry = {
                "timestamp": entry.timestamp.isoformat(),
                "hub": entry.hub,
                "preset": entry.preset,
                "dry_run": entry.dry_run,
                "success": entry.success,
                "changes": entry.changes,
                "errors": entry.errors,
            }

            with open(log_path, "a") as f:
                f.write(json.dumps(log_entry) + "\n")

        except OSError as e:
            logger.warning(f"Failed to write audit log: {e}")
