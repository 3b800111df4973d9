"""
Serial Link - USB CDC console connection to the printer.

Architecture:
  - One daemon thread owns the port: discover, open, read, reconnect
  - Port found by USB VID/PID unless an explicit device path is configured
  - Every read chunk goes straight to the listener's on_data()
  - Writes come from other threads and are serialised by a lock
  - Lost device -> on_error() + on_disconnect(), then retry every reconnect_interval
"""

import logging
import threading
from typing import Optional

import serial
from serial.tools import list_ports

from core.interfaces.byte_link import ByteLink, LinkUnavailableError, LinkWriteError

log = logging.getLogger("bridge.serial")

RECONNECT_INTERVAL = 2.0  # seconds between attempts while no printer is attached


class SerialLink(ByteLink):
    """ByteLink backed by pyserial."""

    def __init__(self, port: Optional[str] = None, vid: Optional[int] = None,
                 pid: Optional[int] = None, baudrate: int = 115200,
                 read_timeout: float = 0.1, write_timeout: float = 1.0,
                 reconnect_interval: float = RECONNECT_INTERVAL, init_commands: str = ""):
        self.port = port
        self.vid = vid
        self.pid = pid
        self.baudrate = baudrate
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.reconnect_interval = reconnect_interval
        self.init_commands = init_commands
        self._serial: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_settings(cls, settings) -> "SerialLink":
        return cls(
            port=settings.serial_port,
            vid=settings.serial_vid,
            pid=settings.serial_pid,
            baudrate=settings.serial_baudrate,
            read_timeout=settings.serial_read_timeout,
            write_timeout=settings.serial_write_timeout,
            reconnect_interval=settings.reconnect_interval,
            init_commands=settings.init_commands,
        )

    # ==================== Lifecycle ====================

    @property
    def is_connected(self) -> bool:
        ser = self._serial
        return ser is not None and ser.is_open

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="serial-link", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        self._close()

    # ==================== Writes ====================

    def send(self, data: bytes, timeout: float) -> None:
        with self._write_lock:
            ser = self._serial
            if ser is None or not ser.is_open:
                raise LinkUnavailableError("No printer connected")
            try:
                ser.write_timeout = timeout
                ser.write(data)
                ser.flush()
            except serial.SerialTimeoutException as e:
                raise LinkWriteError(f"Write timed out after {timeout}s") from e
            except (serial.SerialException, OSError) as e:
                raise LinkWriteError(str(e)) from e

    # ==================== Port handling ====================

    def find_port(self) -> Optional[str]:
        """Configured device path, or the first port matching VID/PID."""
        if self.port:
            return self.port
        for info in list_ports.comports():
            if info.vid == self.vid and info.pid == self.pid:
                return info.device
        return None

    def _open(self, device: str) -> serial.Serial:
        ser = serial.Serial(
            port=device,
            baudrate=self.baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=self.read_timeout,
            write_timeout=self.write_timeout,
        )
        ser.dtr = True
        ser.rts = False
        return ser

    def _close(self) -> None:
        with self._write_lock:
            ser, self._serial = self._serial, None
        if ser is not None:
            try:
                ser.close()
            except (serial.SerialException, OSError):
                log.debug("Error closing serial port", exc_info=True)

    # ==================== Thread body ====================

    def _run(self) -> None:
        log.info("Serial link started")
        while not self._stop.is_set():
            device = self.find_port()
            if not device:
                log.warning("No printer console found. Retrying...")
                self._stop.wait(self.reconnect_interval)
                continue

            try:
                ser = self._open(device)
            except (serial.SerialException, OSError) as e:
                log.warning(f"Could not open {device}: {e}")
                self._stop.wait(self.reconnect_interval)
                continue

            with self._write_lock:
                self._serial = ser
            log.info(f"Connected to printer console on {device} @ {self.baudrate} baud")
            if self._listener:
                self._listener.on_connect()
            self._send_init_commands()

            self._read_until_lost(ser)

            self._close()
            if self._listener:
                self._listener.on_disconnect()
            if not self._stop.is_set():
                log.warning(f"Printer console on {device} lost, retrying in {self.reconnect_interval}s")
                self._stop.wait(self.reconnect_interval)
        log.info("Serial link stopped")

    def _send_init_commands(self) -> None:
        if not self.init_commands:
            return
        try:
            self.send(self.init_commands.encode("ascii"), self.write_timeout)
            log.info(f"Sent init commands: {self.init_commands.strip()!r}")
        except (LinkUnavailableError, LinkWriteError) as e:
            log.warning(f"Init commands not sent: {e}")

    def _read_until_lost(self, ser: serial.Serial) -> None:
        while not self._stop.is_set():
            try:
                data = ser.read(ser.in_waiting or 1)
            except (serial.SerialException, OSError) as e:
                log.warning(f"Serial read failed: {e}")
                if self._listener:
                    self._listener.on_error(f"Serial read failed: {e}")
                return
            if data and self._listener:
                self._listener.on_data(data)
