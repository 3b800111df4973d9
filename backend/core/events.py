# core/events.py - canonical event definitions
# Every message pushed to WebSocket subscribers is one of these models.
# Payloads are complete: a queued event never needs the state store to be read.

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# Event types (the "type" field on the wire)
TEMPERATURE = "temperature"   # {nozzle, bed, heatbreak, chamber}
PROGRESS = "progress"         # {percent, timeLeft, changeTime}
POSITION = "position"         # {x, y, z, e}
POWER = "power"               # {nozzle, bed, heatbreak}
STATUS = "status"             # {connected}
LOG = "log"                   # {message}
ERROR = "error"               # {message}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ZoneTemp(_Frozen):
    current: float = 0.0
    target: float = 0.0


class ChamberTemp(_Frozen):
    current: float = 0.0


class BridgeEvent(_Frozen):
    """Base for all subscriber-facing events."""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class TemperatureEvent(BridgeEvent):
    type: Literal["temperature"] = TEMPERATURE
    nozzle: ZoneTemp = ZoneTemp()
    bed: ZoneTemp = ZoneTemp()
    heatbreak: ZoneTemp = ZoneTemp()
    chamber: ChamberTemp = ChamberTemp()


class ProgressEvent(BridgeEvent):
    type: Literal["progress"] = PROGRESS
    percent: int = 0
    time_left: int = Field(default=0, serialization_alias="timeLeft")
    change_time: int = Field(default=0, serialization_alias="changeTime")


class PositionEvent(BridgeEvent):
    type: Literal["position"] = POSITION
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0


class PowerEvent(BridgeEvent):
    type: Literal["power"] = POWER
    nozzle: int = 0
    bed: int = 0
    heatbreak: int = 0


class StatusEvent(BridgeEvent):
    type: Literal["status"] = STATUS
    connected: bool = False


class LogEvent(BridgeEvent):
    type: Literal["log"] = LOG
    message: str


class ErrorEvent(BridgeEvent):
    type: Literal["error"] = ERROR
    message: str


Event = Union[
    TemperatureEvent,
    ProgressEvent,
    PositionEvent,
    PowerEvent,
    StatusEvent,
    LogEvent,
    ErrorEvent,
]
