"""
Shared test helpers for the bridge test suite.

In-memory stand-ins for the two external collaborators: the printer byte
link and the subscriber transport.
"""

import asyncio
import json
import time

from core.interfaces.byte_link import ByteLink, LinkUnavailableError, LinkWriteError
from core.interfaces.subscriber_transport import SubscriberTransport


class FakeLink(ByteLink):
    """ByteLink that records writes and lets tests drive the listener."""

    def __init__(self, connected: bool = False, fail_writes: bool = False):
        self._connected = connected
        self.fail_writes = fail_writes
        self.sent: list[bytes] = []
        self.started = False
        self.stopped = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def send(self, data: bytes, timeout: float) -> None:
        if not self._connected:
            raise LinkUnavailableError("No printer connected")
        if self.fail_writes:
            raise LinkWriteError("Write timed out")
        self.sent.append(data)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    # Test drivers

    def attach(self) -> None:
        self._connected = True
        self._listener.on_connect()

    def detach(self) -> None:
        self._connected = False
        self._listener.on_disconnect()

    def feed(self, data: bytes) -> None:
        self._listener.on_data(data)


class RecordingTransport(SubscriberTransport):
    """
    Collects payloads per handle. Handles listed in failing always raise;
    handles listed in stalled never finish a send, like a peer that stopped
    reading.
    """

    def __init__(self, failing=(), stalled=()):
        self.failing = set(failing)
        self.stalled = set(stalled)
        self.sent: dict = {}

    async def send_text(self, handle, payload: str) -> None:
        if handle in self.failing:
            raise ConnectionError(f"{handle} is gone")
        if handle in self.stalled:
            await asyncio.Event().wait()
        self.sent.setdefault(handle, []).append(json.loads(payload))


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll predicate until it is true or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
