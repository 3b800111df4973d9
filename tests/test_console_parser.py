"""
Unit tests for backend/modules/console/parser.py - ConsoleParser.

Verifies that console lines update the StateStore and publish events in
pattern order, one log event per line, with identical results for repeated
lines.

Run:
    pytest tests/test_console_parser.py -v
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

import pytest

from core.events import LogEvent, PositionEvent, PowerEvent, ProgressEvent, TemperatureEvent
from core.printer_state import StateStore
from modules.console.parser import ConsoleParser


@pytest.fixture
def parser(store, published):
    return ConsoleParser(store, published.append)


def _of_type(events, cls):
    return [e for e in events if isinstance(e, cls)]


class TestScenarios:
    def test_dual_zone_temperature(self, parser):
        events = parser.handle_line("T:210.0/210.0 B:60.0/60.0")
        temps = _of_type(events, TemperatureEvent)
        assert len(temps) == 1
        assert temps[0].nozzle.current == 210.0 and temps[0].nozzle.target == 210.0
        assert temps[0].bed.current == 60.0 and temps[0].bed.target == 60.0

    def test_progress_report(self, parser):
        events = parser.handle_line("M73 Progress: 42%; Time left: 1h 5m; Change: 16m;")
        progress = _of_type(events, ProgressEvent)
        assert len(progress) == 1
        assert (progress[0].percent, progress[0].time_left, progress[0].change_time) == (42, 65, 16)

    def test_position_report(self, parser):
        events = parser.handle_line("X:10.00 Y:20.00 Z:1.50 E:0.00 Count A:800 B:1600 Z:600")
        pos = _of_type(events, PositionEvent)
        assert len(pos) == 1
        assert (pos[0].x, pos[0].y, pos[0].z, pos[0].e) == (10.0, 20.0, 1.5, 0.0)

    def test_completion_keeps_change_time(self, parser, store):
        parser.handle_line("M73 Progress: 97%; Time left: 3m; Change: 16m;")
        events = parser.handle_line("Done printing file")
        progress = _of_type(events, ProgressEvent)
        assert len(progress) == 1
        assert (progress[0].percent, progress[0].time_left, progress[0].change_time) == (100, 0, 16)
        assert store.snapshot().progress_percent == 100


class TestDualZoneRule:
    def test_nozzle_without_bed_updates_nothing(self, parser, store):
        events = parser.handle_line("T:210.0/210.0")
        assert _of_type(events, TemperatureEvent) == []
        assert store.snapshot().nozzle.current == 0.0

    def test_auxiliary_zone_without_pair_still_updates(self, parser, store):
        events = parser.handle_line("echo C@:31.0")
        temps = _of_type(events, TemperatureEvent)
        assert len(temps) == 1
        assert temps[0].chamber.current == 31.0
        assert store.snapshot().chamber == 31.0


class TestEventOrdering:
    def test_multi_fact_line(self, parser, published):
        line = "T:215.00/215.00 B:60.00/60.00 X:38.22/36.00 @:77 B@:34 C@:28.4 HBR@:255"
        events = parser.handle_line(line)
        assert [e.type for e in events] == ["log", "temperature", "temperature", "power"]
        assert events == published

    def test_log_event_per_line(self, parser):
        events = parser.handle_line("echo:busy: processing")
        assert events == [LogEvent(message="echo:busy: processing")]

    def test_temperature_events_are_self_contained(self, parser):
        events = parser.handle_line("T:215.00/215.00 B:60.00/60.00 X:38.22/36.00 C@:28.4")
        first, second = _of_type(events, TemperatureEvent)
        # first event: nozzle/bed applied, aux zones not yet
        assert first.nozzle.current == 215.0 and first.heatbreak.current == 0.0
        # second event carries everything
        assert second.nozzle.current == 215.0
        assert second.heatbreak.current == 38.22 and second.heatbreak.target == 36.0
        assert second.chamber.current == 28.4

    def test_power_subset_keeps_other_fields(self, parser):
        parser.handle_line("ok @:10 B@:20 HBR@:30")
        events = parser.handle_line("ok B@:99")
        power = _of_type(events, PowerEvent)[0]
        assert (power.nozzle, power.bed, power.heatbreak) == (10, 99, 30)


class TestIdempotence:
    def test_same_line_twice(self, parser, store):
        line = "T:210.0/210.0 B:60.0/60.0 @:100"
        first = parser.handle_line(line)
        state_after_first = store.snapshot()
        second = parser.handle_line(line)
        assert first == second
        assert store.snapshot() == state_after_first


class TestMalformed:
    def test_bad_number_skips_only_that_pattern(self, parser, store):
        events = parser.handle_line("T:abc/210.0 B:60.0/60.0 B@:40")
        assert _of_type(events, TemperatureEvent) == []
        assert _of_type(events, PowerEvent)[0].bed == 40
        assert store.snapshot().bed_power == 40

    def test_processing_continues_after_garbage(self, parser):
        parser.handle_line("\x00\x01 T:/ B:?? X: Progress: %")
        events = parser.handle_line("T:20.0/0.0 B:21.0/0.0")
        assert len(_of_type(events, TemperatureEvent)) == 1

    def test_control_characters_escaped_on_the_wire(self, parser):
        events = parser.handle_line("bad\x1bline\t\"quoted\"")
        assert events[0].to_json() == '{"type":"log","message":"bad\\u001bline\\t\\"quoted\\""}'


def test_lines_seen_counter():
    parser = ConsoleParser(StateStore(), lambda e: None)
    for line in ("a", "b", "c"):
        parser.handle_line(line)
    assert parser.lines_seen == 3
