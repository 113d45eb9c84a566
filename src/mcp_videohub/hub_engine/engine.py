"""Hub session - owns the live hub state and the loaded preset.

Provides a single entry point for:
1. Reading the hub
2. Saving, loading and deleting presets
3. Comparing the loaded preset with the hub
4. Writing the loaded preset's routing to the hub
"""
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Optional

from ..devices import HubConfig, VideohubConnection, create_connection
from ..config.inventory import validate_host
from ..preset_store import PresetStore
from ..utils.connection import with_retry
from .schema import (
    DeviceState,
    FetchResult,
    CompareRow,
    ApplyOptions,
    ApplyResult,
    PreconditionError,
)
from .fetcher import fetch_device_state
from .diff import compare_states
from .executor import RoutingExecutor

logger = logging.getLogger(__name__)


class HubSession:
    """
    One hub, at most one live state and one loaded preset.

    Usage:
        session = HubSession(hub_config, PresetStore())
        await session.read_hub()
        session.load_preset("sunday-service")
        rows = session.compare()
        result = await session.apply_preset(dry_run=True)
    """

    def __init__(
        self,
        hub: HubConfig,
        store: Optional[PresetStore] = None,
        hub_id: Optional[str] = None,
        audit_log_path: Optional[str] = None,
    ):
        """
        Initialize the session.

        Args:
            hub: Connection settings for the hub
            store: Preset store (default: ~/.videohub)
            hub_id: Inventory identifier used in logs
            audit_log_path: Path to the apply audit log (default: $VIDEOHUB_AUDIT_LOG, unset means none)
        """
        self.hub = hub
        self.hub_id = hub_id or hub.name
        self.store = store or PresetStore()
        self.executor = RoutingExecutor(audit_log_path or os.environ.get("VIDEOHUB_AUDIT_LOG"))
        self.live = DeviceState()
        self.preset = DeviceState()
        self.preset_name: Optional[str] = None
        self.last_fetch: Optional[FetchResult] = None

    @property
    def hub_read(self) -> bool:
        return self.live.is_populated

    def _new_connection(self) -> VideohubConnection:
        return create_connection(self.hub)

    @asynccontextmanager
    async def _connected(self):
        """Open a connection for one operation and always close it."""
        connection = self._new_connection()

        @with_retry(
            max_attempts=max(1, self.hub.retries),
            min_wait=self.hub.retry_delay,
            max_wait=self.hub.retry_delay * 4,
        )
        async def open_connection():
            await connection.connect()

        await open_connection()
        try:
            yield connection
        finally:
            await connection.close()

    async def read_hub(self) -> FetchResult:
        """
        Fetch labels and routing and replace the live state.

        Raises:
            HubConnectionError: If the hub cannot be reached
        """
        logger.info(f"Reading Videohub {self.hub_id} at {self.hub.address}")
        async with self._connected() as connection:
            result = await fetch_device_state(
                connection,
                initial_timeout=self.hub.initial_timeout,
                followup_timeout=self.hub.followup_timeout,
                source=self.hub.source,
            )

        self.live.replace_with(result.state)
        self.last_fetch = result
        return result

    def save_preset(self, name: str, description: str = "", overwrite: bool = False):
        """
        Store the live hub state as a preset.

        Raises:
            PreconditionError: If the hub has not been read or has no routing
            PresetExistsError: If the preset exists and overwrite is False
        """
        if not self.hub_read or not self.live.routing:
            raise PreconditionError("No hub data available. Please read the Videohub first.")

        snapshot = replace(self.live, description=description)
        return self.store.save(name, snapshot, overwrite=overwrite)

    def load_preset(self, name: str) -> DeviceState:
        """Replace the loaded preset with a stored one."""
        state = self.store.load(name)
        self.preset.replace_with(state)
        self.preset_name = self.store.preset_path(name).stem
        return self.preset

    def delete_preset(self, name: str) -> bool:
        """Delete a stored preset; unloads it if it is the loaded one."""
        deleted = self.store.delete(name)
        if deleted and self.preset_name == self.store.preset_path(name).stem:
            self.preset.reset()
            self.preset_name = None
        return deleted

    def compare(self) -> list[CompareRow]:
        """Compare the loaded preset with the live state."""
        return compare_states(self.preset, self.live)

    async def apply_preset(self, dry_run: bool = False) -> ApplyResult:
        """
        Write the loaded preset's routing to the hub.

        Raises:
            PreconditionError: If no preset is loaded
            HubConnectionError: If the hub cannot be reached
        """
        options = ApplyOptions(
            dry_run=dry_run,
            drain_responses=self.hub.drain_responses,
            initial_timeout=self.hub.initial_timeout,
            followup_timeout=self.hub.followup_timeout,
        )

        if dry_run or not self.preset.routing:
            # No connection needed to plan or to reject
            return await self.executor.apply(
                None, self.preset, options, hub=self.hub_id, preset_name=self.preset_name or ""
            )

        logger.info(f"Sending preset '{self.preset_name}' to {self.hub_id}")
        async with self._connected() as connection:
            return await self.executor.apply(
                connection, self.preset, options,
                hub=self.hub_id, preset_name=self.preset_name or "",
            )

    def set_hub(self, host: str, port: Optional[int] = None) -> HubConfig:
        """
        Point the session at another hub address.

        The live state described the old hub, so it is cleared.

        Raises:
            ValueError: If `host` is not an IPv4 address
        """
        host = validate_host(host)
        self.hub = replace(self.hub, host=host, port=port or self.hub.port)
        self.live.reset()
        self.last_fetch = None
        logger.info(f"Videohub address set to {self.hub.address}")
        return self.hub

    def status(self) -> dict:
        return {
            "hub_id": self.hub_id,
            "address": self.hub.address,
            "hub_read": self.hub_read,
            "loaded_preset": self.preset_name,
        }
