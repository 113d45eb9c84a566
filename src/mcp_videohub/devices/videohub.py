"""Raw TCP transport for Blackmagic Videohub routers.

The Videohub Ethernet protocol is plain ASCII over TCP port 9990. It has
no length prefixes and no end-of-message terminator, so a response is
considered complete once the socket has been quiet for a short while.

Technical details:
- Requests are single raw command bytes (0x00 preamble, 0x01 input
  labels, 0x02 output labels, 0x03 routing) or ASCII blocks such as
  "VIDEO OUTPUT ROUTING:\\n<out> <in>\\n\\n"
- The first read waits `initial_timeout`; once bytes arrive the wait is
  shortened to `followup_timeout` for the rest of the response
- One connection serves one sequential request/drain exchange at a time
"""
import asyncio
import logging
import socket
from typing import Optional

from .base import DEFAULT_PORT, HubConnectionError, SendError

logger = logging.getLogger(__name__)

RECV_CHUNK_SIZE = 8192
# Upper bound for one drained response; a hub that never goes quiet
# must not keep the caller waiting forever.
MAX_RESPONSE_BYTES = 1024 * 1024


class VideohubConnection:
    """Low-level socket handler for one Videohub session."""

    def __init__(self, host: str, port: int = DEFAULT_PORT, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._socket: Optional[socket.socket] = None

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    async def connect(self) -> None:
        """Open the TCP connection.

        Raises:
            HubConnectionError: If the hub cannot be reached
        """
        loop = asyncio.get_event_loop()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            await loop.run_in_executor(None, sock.connect, (self.host, self.port))
        except OSError as e:
            sock.close()
            raise HubConnectionError(
                f"Cannot connect to Videohub at {self.host}:{self.port}: {e}"
            ) from e

        self._socket = sock
        logger.info(f"Connected to Videohub at {self.host}:{self.port}")

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._socket:
            try:
                self._socket.close()
            except OSError as e:
                logger.debug(f"Error closing socket: {e}")
            self._socket = None
            logger.debug(f"Disconnected from {self.host}:{self.port}")

    async def send_command(self, data: bytes) -> None:
        """Send all bytes of a command.

        Raises:
            SendError: If the socket is closed or the write fails
        """
        if not self._socket:
            raise SendError("Not connected")
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._socket.sendall, data)
        except OSError as e:
            raise SendError(f"Failed sending {len(data)} bytes: {e}") from e

    async def _read_available(self, timeout: float) -> bytes:
        """Wait up to `timeout` seconds for the next chunk.

        Returns b"" on timeout, on peer close, or on a read error.
        """
        if not self._socket:
            raise HubConnectionError("Not connected")

        loop = asyncio.get_event_loop()
        self._socket.settimeout(timeout)
        try:
            return await loop.run_in_executor(None, self._socket.recv, RECV_CHUNK_SIZE)
        except socket.timeout:
            return b""
        except OSError as e:
            logger.debug(f"Read error: {e}")
            return b""

    async def receive_until_quiet(
        self,
        initial_timeout: float = 0.25,
        followup_timeout: float = 0.08,
    ) -> bytes:
        """Drain the socket until it stays quiet.

        Args:
            initial_timeout: Wait for the first bytes (seconds)
            followup_timeout: Wait for each following chunk (seconds)

        Returns:
            Everything received; empty if nothing arrived in time
        """
        output = bytearray()
        timeout = initial_timeout

        while len(output) < MAX_RESPONSE_BYTES:
            chunk = await self._read_available(timeout)
            if not chunk:
                break
            output += chunk
            timeout = followup_timeout

        if len(output) >= MAX_RESPONSE_BYTES:
            logger.warning(f"Response from {self.host} truncated at {len(output)} bytes")

        return bytes(output)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
