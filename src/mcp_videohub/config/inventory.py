"""Hub inventory management from YAML configuration."""
import ipaddress
import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Optional

import yaml

from ..devices.base import HubConfig, DEFAULT_PORT

logger = logging.getLogger(__name__)

# Used when no hubs.yaml is found
BUILTIN_HUBS = {
    "videohub-12x12": {"name": "Videohub 12x12", "host": "192.168.1.248"},
    "videohub-40x40": {"name": "Videohub 40x40", "host": "172.20.5.247"},
}
DEFAULT_HUB = "videohub-40x40"


def validate_host(host: str) -> str:
    """
    Check that `host` is a dotted IPv4 address.

    Returns:
        The host, stripped

    Raises:
        ValueError: If it is not a valid IPv4 address
    """
    host = host.strip()
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        raise ValueError(f"Invalid IP address format: {host}")
    return host


class HubInventory:
    """Manages the hub inventory loaded from YAML config.

    ```yaml
    defaults:
      port: 9990
      timeout: 5

    default_hub: studio-40x40

    hubs:
      studio-12x12:
        name: "Videohub 12x12"
        host: 192.168.1.248
      studio-40x40:
        name: "Videohub 40x40"
        host: 172.20.5.247
        retries: 3
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> Optional[str]:
        """Find the hubs.yaml config file, if there is one."""
        env_path = os.environ.get("VIDEOHUB_CONFIG")
        if env_path:
            return env_path

        search_paths = [
            Path.cwd() / "configs" / "hubs.yaml",
            Path.cwd() / "hubs.yaml",
            Path.home() / ".config" / "mcp-videohub" / "hubs.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        return None

    def _load_config(self) -> None:
        """Load the YAML configuration (or the built-in hubs)."""
        if self.config_path:
            with open(self.config_path) as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded hub inventory from {self.config_path}")
        else:
            logger.debug("No hubs.yaml found, using built-in hubs")
            self._config = {
                "default_hub": DEFAULT_HUB,
                "hubs": {k: dict(v) for k, v in BUILTIN_HUBS.items()},
            }

        hubs = self._config.setdefault("hubs", {}) or {}
        self._config["hubs"] = hubs

        # Merge defaults
        defaults = self._config.get("defaults", {}) or {}
        for hub_id, hub_config in hubs.items():
            if hub_config is None:
                hub_config = hubs[hub_id] = {}
            for key, value in defaults.items():
                if key not in hub_config:
                    hub_config[key] = value
            hub_config.setdefault("name", hub_id)
            hub_config.setdefault("port", DEFAULT_PORT)

    def get_hub_ids(self) -> list[str]:
        """Get all hub IDs."""
        return list(self._config["hubs"].keys())

    @property
    def default_hub_id(self) -> Optional[str]:
        """Configured default hub, else the first one listed."""
        default = self._config.get("default_hub")
        if default in self._config["hubs"]:
            return default
        ids = self.get_hub_ids()
        return ids[0] if ids else None

    def get_hub_config(self, hub_id: str) -> dict:
        """Get raw config for a hub."""
        hubs = self._config["hubs"]
        if hub_id not in hubs:
            raise KeyError(f"Unknown hub: {hub_id}")
        return hubs[hub_id]

    def get_hub(self, hub_id: Optional[str] = None) -> HubConfig:
        """
        Build the HubConfig for a hub (the default hub if `hub_id` is None).

        Raises:
            KeyError: If the hub is unknown or the inventory is empty
            ValueError: If the configured host is not an IPv4 address
        """
        hub_id = hub_id or self.default_hub_id
        if hub_id is None:
            raise KeyError("No hubs configured")
        raw = self.get_hub_config(hub_id)

        known = {f.name for f in fields(HubConfig)}
        unknown = set(raw) - known
        if unknown:
            logger.warning(f"Hub '{hub_id}' has unknown settings: {sorted(unknown)}")

        if "host" not in raw:
            raise KeyError(f"Hub '{hub_id}' has no host")

        config = HubConfig(**{k: v for k, v in raw.items() if k in known})
        config.host = validate_host(str(config.host))
        return config
