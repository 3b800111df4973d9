"""
Unit tests for backend/modules/console/serial_link.py - SerialLink.

pyserial is exercised through an in-memory FakeSerial; no device is opened.

Run:
    pytest tests/test_serial_link.py -v
"""

import sys
import os
from types import SimpleNamespace
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

import pytest
import serial

from core.config import Settings
from core.interfaces.byte_link import LinkUnavailableError, LinkWriteError
from modules.console import serial_link
from modules.console.serial_link import SerialLink
from helpers import wait_for


class FakeSerial:
    """Returns queued chunks from read(), then fails like an unplugged device."""

    def __init__(self, chunks=(), write_timeout=False):
        self.chunks = list(chunks)
        self.write_times_out = write_timeout
        self.is_open = True
        self.written = []
        self.write_timeout = None

    @property
    def in_waiting(self):
        return len(self.chunks[0]) if self.chunks else 0

    def read(self, size=1):
        if self.chunks:
            return self.chunks.pop(0)
        raise serial.SerialException("device reports readiness to read but returned no data")

    def write(self, data):
        if self.write_times_out:
            raise serial.SerialTimeoutException("Write timeout")
        self.written.append(data)
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False


class RecordingListener:
    def __init__(self):
        self.calls = []

    def on_data(self, data):
        self.calls.append(("data", data))

    def on_connect(self):
        self.calls.append(("connect", None))

    def on_disconnect(self):
        self.calls.append(("disconnect", None))

    def on_error(self, message):
        self.calls.append(("error", message))


class TestPortDiscovery:
    def test_explicit_port_wins(self, monkeypatch):
        monkeypatch.setattr(serial_link.list_ports, "comports", lambda: pytest.fail("should not scan"))
        assert SerialLink(port="/dev/ttyACM3").find_port() == "/dev/ttyACM3"

    def test_matches_vid_pid(self, monkeypatch):
        ports = [
            SimpleNamespace(device="/dev/ttyUSB0", vid=0x0403, pid=0x6001),
            SimpleNamespace(device="/dev/ttyACM0", vid=0x2C99, pid=0x001F),
        ]
        monkeypatch.setattr(serial_link.list_ports, "comports", lambda: ports)
        assert SerialLink(vid=0x2C99, pid=0x001F).find_port() == "/dev/ttyACM0"

    def test_no_match(self, monkeypatch):
        monkeypatch.setattr(serial_link.list_ports, "comports", lambda: [])
        assert SerialLink(vid=0x2C99, pid=0x001F).find_port() is None

    def test_from_settings(self):
        link = SerialLink.from_settings(Settings(serial_port="/dev/ttyACM9", serial_baudrate=250000))
        assert link.port == "/dev/ttyACM9"
        assert link.baudrate == 250000
        assert link.init_commands.startswith("M300")


class TestWrites:
    def test_send_without_device(self):
        link = SerialLink(port="/dev/null")
        assert link.is_connected is False
        with pytest.raises(LinkUnavailableError):
            link.send(b"G28\n", timeout=1.0)

    def test_send_writes_bytes(self):
        link = SerialLink()
        fake = FakeSerial()
        link._serial = fake
        link.send(b"M105\n", timeout=0.5)
        assert fake.written == [b"M105\n"]
        assert fake.write_timeout == 0.5

    def test_write_timeout_is_link_write_error(self):
        link = SerialLink()
        link._serial = FakeSerial(write_timeout=True)
        with pytest.raises(LinkWriteError):
            link.send(b"M105\n", timeout=0.1)


class TestReadThread:
    def test_connect_read_lose_cycle(self, monkeypatch):
        fake = FakeSerial(chunks=[b"start\n", b"ok T:20.0/0.0 B:21.0/0.0\n"])
        opened = []

        def _open(device):
            if opened:
                raise serial.SerialException(f"could not open port {device}")
            opened.append(device)
            return fake

        link = SerialLink(port="/dev/ttyACM0", reconnect_interval=0.01, init_commands="M155 S2\n")
        monkeypatch.setattr(link, "_open", _open)
        listener = RecordingListener()
        link.set_listener(listener)

        link.start()
        try:
            assert wait_for(lambda: ("disconnect", None) in listener.calls)
        finally:
            link.stop()

        kinds = [kind for kind, _ in listener.calls]
        assert kinds == ["connect", "data", "data", "error", "disconnect"]
        assert listener.calls[1] == ("data", b"start\n")
        assert fake.written == [b"M155 S2\n"]
        assert fake.is_open is False
        assert link.is_connected is False
        assert opened == ["/dev/ttyACM0"]
