"""Videohub transport and connection settings."""
from .base import HubConfig, HubConnectionError, SendError, DEFAULT_PORT
from .videohub import VideohubConnection

__all__ = [
    "HubConfig",
    "HubConnectionError",
    "SendError",
    "DEFAULT_PORT",
    "VideohubConnection",
]


def create_connection(config: HubConfig) -> VideohubConnection:
    """Factory function to create an unopened connection for a hub."""
    return VideohubConnection(config.host, config.port, timeout=config.timeout)
