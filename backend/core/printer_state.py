# core/printer_state.py - canonical printer state store
#
# Single source of truth for the latest console telemetry. Only the console
# parser mutates it; new subscribers read it whole as a snapshot. One lock
# covers every read and write so a snapshot never sees half of a multi-field
# update (e.g. nozzle updated but bed not yet).

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

from core.events import (
    BridgeEvent, ChamberTemp, PositionEvent, PowerEvent, ProgressEvent,
    StatusEvent, TemperatureEvent, ZoneTemp,
)

log = logging.getLogger("bridge.state")

Reading = Tuple[float, float]  # (current, target)


@dataclass
class ZoneReading:
    current: float = 0.0
    target: float = 0.0


@dataclass
class PrinterState:
    """Latest known value of every tracked dimension."""

    # Temperatures
    nozzle: ZoneReading = field(default_factory=ZoneReading)
    bed: ZoneReading = field(default_factory=ZoneReading)
    heatbreak: ZoneReading = field(default_factory=ZoneReading)
    chamber: float = 0.0

    # Print progress
    progress_percent: int = 0
    time_left: int = 0      # minutes
    change_time: int = 0    # minutes until next filament/colour change, -1 when not applicable

    # Toolhead position
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0

    # Heater duty
    nozzle_power: int = 0
    bed_power: int = 0
    heatbreak_power: int = 0

    connected: bool = False


# ---------------------------------------------------------------------------
# State -> event conversion
# ---------------------------------------------------------------------------

def temperature_event(state: PrinterState) -> TemperatureEvent:
    return TemperatureEvent(
        nozzle=ZoneTemp(current=state.nozzle.current, target=state.nozzle.target),
        bed=ZoneTemp(current=state.bed.current, target=state.bed.target),
        heatbreak=ZoneTemp(current=state.heatbreak.current, target=state.heatbreak.target),
        chamber=ChamberTemp(current=state.chamber),
    )


def progress_event(state: PrinterState) -> ProgressEvent:
    return ProgressEvent(
        percent=state.progress_percent,
        time_left=state.time_left,
        change_time=state.change_time,
    )


def position_event(state: PrinterState) -> PositionEvent:
    return PositionEvent(x=state.x, y=state.y, z=state.z, e=state.e)


def power_event(state: PrinterState) -> PowerEvent:
    return PowerEvent(
        nozzle=state.nozzle_power,
        bed=state.bed_power,
        heatbreak=state.heatbreak_power,
    )


def status_event(state: PrinterState) -> StatusEvent:
    return StatusEvent(connected=state.connected)


def snapshot_events(state: PrinterState) -> list[BridgeEvent]:
    """One event per state dimension, used to bring a late joiner up to date."""
    return [
        status_event(state),
        temperature_event(state),
        progress_event(state),
        position_event(state),
        power_event(state),
    ]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StateStore:
    """
    Lock-guarded owner of the PrinterState.

    Each apply_* method updates one dimension and returns the event describing
    the result, built while the lock is still held. Callers publish the event
    after the lock is released.
    """

    def __init__(self, state: Optional[PrinterState] = None):
        self._lock = threading.Lock()
        self._state = state or PrinterState()

    def snapshot(self) -> PrinterState:
        """Return a deep copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._state)

    def snapshot_events(self) -> list[BridgeEvent]:
        with self._lock:
            return snapshot_events(self._state)

    def apply_temperature(self, nozzle: Optional[Reading] = None, bed: Optional[Reading] = None,
                          heatbreak: Optional[Reading] = None,
                          chamber: Optional[float] = None) -> TemperatureEvent:
        with self._lock:
            s = self._state
            if nozzle is not None:
                s.nozzle.current, s.nozzle.target = nozzle
            if bed is not None:
                s.bed.current, s.bed.target = bed
            if heatbreak is not None:
                s.heatbreak.current, s.heatbreak.target = heatbreak
            if chamber is not None:
                s.chamber = chamber
            return temperature_event(s)

    def apply_progress(self, percent: Optional[int] = None, time_left: Optional[int] = None,
                       change_time: Optional[int] = None) -> ProgressEvent:
        with self._lock:
            s = self._state
            if percent is not None:
                s.progress_percent = percent
            if time_left is not None:
                s.time_left = time_left
            if change_time is not None:
                s.change_time = change_time
            return progress_event(s)

    def apply_position(self, x: float, y: float, z: float, e: float) -> PositionEvent:
        with self._lock:
            s = self._state
            s.x, s.y, s.z, s.e = x, y, z, e
            return position_event(s)

    def apply_power(self, nozzle: Optional[int] = None, bed: Optional[int] = None,
                    heatbreak: Optional[int] = None) -> PowerEvent:
        with self._lock:
            s = self._state
            if nozzle is not None:
                s.nozzle_power = nozzle
            if bed is not None:
                s.bed_power = bed
            if heatbreak is not None:
                s.heatbreak_power = heatbreak
            return power_event(s)

    def set_connected(self, connected: bool) -> StatusEvent:
        with self._lock:
            if self._state.connected != connected:
                log.info(f"Printer link {'connected' if connected else 'disconnected'}")
            self._state.connected = connected
            return status_event(self._state)
