"""Tests for the Videohub TCP transport against a loopback server."""
import logging
import socket
import threading
import time

import pytest

from mcp_videohub.devices import (
    HubConfig,
    HubConnectionError,
    SendError,
    VideohubConnection,
    create_connection,
)
from mcp_videohub.devices import videohub


class LoopbackHub:
    """One-shot TCP server running `handler(conn)` in a thread."""

    def __init__(self, handler):
        self.handler = handler
        self.received = bytearray()
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        conn, _ = self._server.accept()
        with conn:
            self.handler(self, conn)

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._thread.join(timeout=2)
        self._server.close()


def free_port() -> int:
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestConnect:
    """Tests for opening and closing the connection."""

    @pytest.mark.asyncio
    async def test_refused(self):
        conn = VideohubConnection("127.0.0.1", free_port(), timeout=1.0)
        with pytest.raises(HubConnectionError):
            await conn.connect()
        assert not conn.is_connected

    def test_connection_error_is_builtin_subclass(self):
        assert issubclass(HubConnectionError, ConnectionError)

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        def handler(hub, conn):
            conn.recv(16)

        with LoopbackHub(handler) as hub:
            async with VideohubConnection("127.0.0.1", hub.port) as conn:
                assert conn.is_connected
            assert not conn.is_connected

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        conn = VideohubConnection("127.0.0.1", 9990)
        await conn.close()
        await conn.close()
        assert not conn.is_connected

    def test_create_connection_uses_config(self):
        config = HubConfig(name="Studio", host="10.1.2.3", port=9991, timeout=2.5)
        conn = create_connection(config)
        assert (conn.host, conn.port, conn.timeout) == ("10.1.2.3", 9991, 2.5)
        assert not conn.is_connected


class TestSendReceive:
    """Tests for sending commands and draining responses."""

    @pytest.mark.asyncio
    async def test_send_when_closed(self):
        conn = VideohubConnection("127.0.0.1", 9990)
        with pytest.raises(SendError):
            await conn.send_command(b"\x00")

    @pytest.mark.asyncio
    async def test_request_and_split_response(self):
        """A response arriving in several chunks is collected until quiet."""
        def handler(hub, conn):
            hub.received += conn.recv(16)
            conn.sendall(b"INPUT LABELS:\n0 Cam")
            time.sleep(0.02)
            conn.sendall(b"era 1\n\n")
            time.sleep(0.5)

        with LoopbackHub(handler) as hub:
            async with VideohubConnection("127.0.0.1", hub.port) as conn:
                await conn.send_command(b"\x01")
                data = await conn.receive_until_quiet(initial_timeout=1.0, followup_timeout=0.2)

        assert hub.received == b"\x01"
        assert data == b"INPUT LABELS:\n0 Camera 1\n\n"

    @pytest.mark.asyncio
    async def test_silent_hub_returns_empty(self):
        """Nothing within the initial timeout is not an error."""
        def handler(hub, conn):
            time.sleep(0.3)

        with LoopbackHub(handler) as hub:
            async with VideohubConnection("127.0.0.1", hub.port) as conn:
                started = time.monotonic()
                data = await conn.receive_until_quiet(initial_timeout=0.1, followup_timeout=0.05)
                elapsed = time.monotonic() - started

        assert data == b""
        assert elapsed < 0.3

    @pytest.mark.asyncio
    async def test_peer_close_ends_response(self):
        def handler(hub, conn):
            conn.sendall(b"VIDEO OUTPUT ROUTING:\n0 1\n\n")

        with LoopbackHub(handler) as hub:
            async with VideohubConnection("127.0.0.1", hub.port) as conn:
                data = await conn.receive_until_quiet(initial_timeout=1.0, followup_timeout=1.0)

        assert data == b"VIDEO OUTPUT ROUTING:\n0 1\n\n"

    @pytest.mark.asyncio
    async def test_endless_response_is_capped(self, monkeypatch, caplog):
        """A hub that never goes quiet stops being read at the size cap."""
        monkeypatch.setattr(videohub, "MAX_RESPONSE_BYTES", 4096)
        stop = threading.Event()

        def handler(hub, conn):
            while not stop.is_set():
                try:
                    conn.sendall(b"VIDEO OUTPUT ROUTING:\n0 1\n" * 64)
                except OSError:
                    break

        with caplog.at_level(logging.WARNING, logger="mcp_videohub.devices.videohub"):
            with LoopbackHub(handler) as hub:
                async with VideohubConnection("127.0.0.1", hub.port) as conn:
                    data = await conn.receive_until_quiet(initial_timeout=1.0, followup_timeout=1.0)
                stop.set()

        assert 4096 <= len(data) < 4096 + videohub.RECV_CHUNK_SIZE
        assert "truncated" in caplog.text
