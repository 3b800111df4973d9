"""
Telemetry parsing helpers for the printer serial console.

Pure functions - no state. Each helper looks for one kind of report in a
console line and returns the parsed values, or None when the marker is
absent or its value does not parse. Typical Prusa firmware output:

    T:215.00/215.00 B:60.00/60.00 X:38.22/36.00 @:77 B@:34 C@:28.4 HBR@:255
    M73 Progress: 42%; Time left: 1h 5m; Change: 16m;
    X:10.00 Y:20.00 Z:1.50 E:0.00 Count A:1000 B:2000 Z:600
"""

import re
from typing import Optional, Tuple

Reading = Tuple[float, float]

_NUM = r"[-+]?(?:\d+\.?\d*|\.\d+)"

# Temperatures
_NOZZLE_RE = re.compile(rf"T:({_NUM})/({_NUM})")
_BED_RE = re.compile(rf" B:({_NUM})/({_NUM})")
_HEATBREAK_RE = re.compile(rf" X:({_NUM})/({_NUM})")
_CHAMBER_RE = re.compile(rf" C@:({_NUM})")

# Heater duty
_NOZZLE_POWER_RE = re.compile(rf" @:({_NUM})")
_BED_POWER_RE = re.compile(rf" B@:({_NUM})")
_HEATBREAK_POWER_RE = re.compile(rf" HBR@:({_NUM})")

# Progress (M73 report)
_PERCENT_RE = re.compile(r"Progress:\s*(\d+)%")
_TIME_LEFT_RE = re.compile(r"Time left:\s*(?:(\d+)h\s*)?(\d+)m")
_CHANGE_RE = re.compile(r"Change:\s*(?:(\d+)h\s*)?(\d+)m")
_COMPACT_PROGRESS_RE = re.compile(r"P:(\d+) R:(\d+) C:(NA|\d+)")

COMPLETION_MARKER = "Done printing file"

# Position (M114 report). Axis data never follows the stepper-count suffix.
POSITION_SUFFIX = "Count"
_AXIS_RES = tuple(
    re.compile(rf"(?<![A-Za-z@]){axis}:({_NUM})(?![\d./])") for axis in ("X", "Y", "Z", "E")
)

CHANGE_NOT_APPLICABLE = -1


def _reading(match) -> Optional[Reading]:
    if not match:
        return None
    try:
        return float(match.group(1)), float(match.group(2))
    except ValueError:
        return None


def _single(regex, line: str) -> Optional[float]:
    match = regex.search(line)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def _duty(value: Optional[float]) -> Optional[int]:
    """Heater duty is reported as a float, kept as the nearest int."""
    if value is None:
        return None
    return int(value + 0.5)


def _minutes(match) -> Optional[int]:
    """'<h>h <m>m' or '<m>m' to total minutes."""
    if not match:
        return None
    hours = int(match.group(1)) if match.group(1) else 0
    return hours * 60 + int(match.group(2))


def parse_dual_zone(line: str) -> Optional[Tuple[Reading, Reading]]:
    """
    Nozzle and bed (current, target) pairs.

    Both zones must be present and parse; a line with only one of them is
    not a temperature report.
    """
    nozzle = _reading(_NOZZLE_RE.search(line))
    bed = _reading(_BED_RE.search(line))
    if nozzle is None or bed is None:
        return None
    return nozzle, bed


def parse_aux_zones(line: str) -> Optional[dict]:
    """
    Heatbreak (current, target) and chamber current, each independent.

    Returns {heatbreak, chamber} with None for a missing zone, or None when
    neither is present.
    """
    heatbreak = _reading(_HEATBREAK_RE.search(line))
    chamber = _single(_CHAMBER_RE, line)
    if heatbreak is None and chamber is None:
        return None
    return {"heatbreak": heatbreak, "chamber": chamber}


def parse_heater_power(line: str) -> Optional[dict]:
    """Heater duty values. Any subset of nozzle/bed/heatbreak may be present."""
    power = {
        "nozzle": _duty(_single(_NOZZLE_POWER_RE, line)),
        "bed": _duty(_single(_BED_POWER_RE, line)),
        "heatbreak": _duty(_single(_HEATBREAK_POWER_RE, line)),
    }
    if all(v is None for v in power.values()):
        return None
    return power


def parse_progress(line: str) -> Optional[dict]:
    """
    M73 progress report: percent, minutes left, minutes to next change.

    Each field is optional; returns None when none of them is present.
    """
    match = _PERCENT_RE.search(line)
    progress = {
        "percent": int(match.group(1)) if match else None,
        "time_left": _minutes(_TIME_LEFT_RE.search(line)),
        "change_time": _minutes(_CHANGE_RE.search(line)),
    }
    if all(v is None for v in progress.values()):
        return None
    return progress


def parse_compact_progress(line: str) -> Optional[dict]:
    """Compact 'P:<percent> R:<minutes> C:<minutes|NA>' report."""
    match = _COMPACT_PROGRESS_RE.search(line)
    if not match:
        return None
    change = match.group(3)
    return {
        "percent": int(match.group(1)),
        "time_left": int(match.group(2)),
        "change_time": CHANGE_NOT_APPLICABLE if change == "NA" else int(change),
    }


def parse_position(line: str) -> Optional[Tuple[float, float, float, float]]:
    """X/Y/Z/E coordinates. All four axes must appear before the Count suffix."""
    head = line.split(POSITION_SUFFIX, 1)[0]
    coords = []
    for regex in _AXIS_RES:
        value = _single(regex, head)
        if value is None:
            return None
        coords.append(value)
    return tuple(coords)


def is_print_complete(line: str) -> bool:
    return COMPLETION_MARKER in line
