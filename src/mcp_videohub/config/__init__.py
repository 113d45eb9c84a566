"""Hub inventory configuration."""
from .inventory import HubInventory, validate_host, BUILTIN_HUBS

__all__ = ["HubInventory", "validate_host", "BUILTIN_HUBS"]
