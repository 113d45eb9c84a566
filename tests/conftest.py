"""Shared fixtures: an in-memory stand-in for a Videohub connection."""
import pytest

from mcp_videohub.devices import SendError


SAMPLE_PREAMBLE = """PROTOCOL PREAMBLE:
Version: 2.3

VIDEOHUB DEVICE:
Device present: true
Model name: Blackmagic Smart Videohub 12x12
Video inputs: 12
Video outputs: 12

"""

SAMPLE_INPUTS = "INPUT LABELS:\n0 Camera 1\n1 Camera 2\n2 Playback\n3 \n\n"
SAMPLE_OUTPUTS = "OUTPUT LABELS:\n0 Program\n1 Monitor\n2 Stream\n\n"
SAMPLE_ROUTING = "VIDEO OUTPUT ROUTING:\n0 2\n1 0\n2 1\n\n"


class FakeHubConnection:
    """
    Answers the four read requests from a canned table and records writes.

    Every send queues the matching response for the next
    receive_until_quiet; routing writes are acknowledged with "ACK".
    """

    def __init__(self, responses=None, greeting=b"", fail_on=()):
        self.responses = responses if responses is not None else {
            b"\x00": SAMPLE_PREAMBLE.encode("ascii"),
            b"\x01": SAMPLE_INPUTS.encode("ascii"),
            b"\x02": SAMPLE_OUTPUTS.encode("ascii"),
            b"\x03": SAMPLE_ROUTING.encode("ascii"),
        }
        self.fail_on = set(fail_on)
        self.sent: list[bytes] = []
        self.attempted: list[bytes] = []
        self.receives = 0
        self.connected = False
        self.connect_calls = 0
        self.closed = False
        self._pending = greeting

    async def connect(self):
        self.connect_calls += 1
        self.connected = True

    async def close(self):
        self.connected = False
        self.closed = True

    async def send_command(self, data: bytes):
        self.attempted.append(data)
        if data in self.fail_on:
            raise SendError(f"Broken pipe on {data!r}")
        self.sent.append(data)
        if data.startswith(b"VIDEO OUTPUT ROUTING:"):
            self._pending = b"ACK\n\n"
        else:
            self._pending = self.responses.get(data, b"")

    async def receive_until_quiet(self, initial_timeout=0.25, followup_timeout=0.08):
        self.receives += 1
        data, self._pending = self._pending, b""
        return data


@pytest.fixture
def fake_hub():
    """Factory for FakeHubConnection instances."""
    return FakeHubConnection
