"""
Console parser - turns console lines into state updates and events.

Every pattern is tried on every line; a line can carry several reports at
once (the temperature auto-report holds temperatures and heater duty). Each
match is written to the StateStore and its event published immediately, in
the order below, before the next pattern is tried. Every line also produces
one log event carrying its text.
"""

import logging
from typing import Any, Callable

from core.events import BridgeEvent, LogEvent
from core.printer_state import StateStore
from modules.console import telemetry

log = logging.getLogger("bridge.parser")


class ConsoleParser:
    """Printer state machine fed one console line at a time."""

    def __init__(self, store: StateStore, publish: Callable[[BridgeEvent], Any]):
        self.store = store
        self._publish = publish
        self.lines_seen = 0

    def handle_line(self, line: str) -> list[BridgeEvent]:
        """Parse one line. Returns the events published for it, in order."""
        self.lines_seen += 1
        emitted: list[BridgeEvent] = []

        def emit(event: BridgeEvent) -> None:
            emitted.append(event)
            self._publish(event)

        emit(LogEvent(message=line))

        dual = telemetry.parse_dual_zone(line)
        if dual:
            nozzle, bed = dual
            emit(self.store.apply_temperature(nozzle=nozzle, bed=bed))

        aux = telemetry.parse_aux_zones(line)
        if aux:
            emit(self.store.apply_temperature(heatbreak=aux["heatbreak"], chamber=aux["chamber"]))

        power = telemetry.parse_heater_power(line)
        if power:
            emit(self.store.apply_power(**power))

        progress = telemetry.parse_progress(line)
        if progress:
            emit(self.store.apply_progress(**progress))

        compact = telemetry.parse_compact_progress(line)
        if compact:
            emit(self.store.apply_progress(**compact))

        position = telemetry.parse_position(line)
        if position:
            emit(self.store.apply_position(*position))

        if telemetry.is_print_complete(line):
            log.info("Print finished")
            emit(self.store.apply_progress(percent=100, time_left=0))

        if len(emitted) > 1:
            log.debug(f"{line!r} -> {[e.type for e in emitted[1:]]}")
        return emitted

