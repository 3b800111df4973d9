"""
modules/console/schemas.py - Pydantic schemas for the console HTTP routes.
"""

from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    # Length and line checks belong to validate_command, configured per app
    command: str = Field(..., min_length=1)


class CommandResponse(BaseModel):
    success: bool
    message: str


class LinkStatusResponse(BaseModel):
    connected: bool


class ZoneResponse(BaseModel):
    current: float
    target: float


class PrinterStateResponse(BaseModel):
    nozzle: ZoneResponse
    bed: ZoneResponse
    heatbreak: ZoneResponse
    chamber: float
    progress_percent: int
    time_left: int
    change_time: int
    x: float
    y: float
    z: float
    e: float
    nozzle_power: int
    bed_power: int
    heatbreak_power: int
    connected: bool
