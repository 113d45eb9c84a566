"""Hub connection settings and transport errors."""
from dataclasses import dataclass

DEFAULT_PORT = 9990


class HubConnectionError(ConnectionError):
    """The TCP session to the hub could not be opened or was lost."""
    pass


class SendError(OSError):
    """A single command could not be written to the hub."""
    pass


@dataclass
class HubConfig:
    """Connection settings for one Videohub."""
    name: str
    host: str
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    retries: int = 1
    retry_delay: float = 1.0
    # Quiescence timeouts used when draining hub responses (seconds)
    initial_timeout: float = 0.5
    followup_timeout: float = 0.08
    drain_responses: bool = True

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def source(self) -> str:
        """Origin string stored on states fetched from this hub."""
        return f"videohub://{self.host}:{self.port}"
