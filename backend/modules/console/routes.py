"""Console routes - link status, state snapshot, command relay."""

import asyncio
import dataclasses
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from modules.console.bridge import ConsoleBridge
from modules.console.commands import CommandRejected
from modules.console.schemas import (
    CommandRequest, CommandResponse, LinkStatusResponse, PrinterStateResponse,
)

log = logging.getLogger("bridge.api")
router = APIRouter()


def get_bridge(request: Request) -> ConsoleBridge:
    return request.app.state.bridge


@router.get("/status", response_model=LinkStatusResponse, tags=["Console"])
async def link_status(bridge: ConsoleBridge = Depends(get_bridge)):
    """Whether a printer is attached to the serial link."""
    return {"connected": bridge.store.snapshot().connected}


@router.get("/state", response_model=PrinterStateResponse, tags=["Console"])
async def printer_state(bridge: ConsoleBridge = Depends(get_bridge)):
    """Current canonical printer state."""
    return dataclasses.asdict(bridge.store.snapshot())


@router.post("/commands", response_model=CommandResponse, tags=["Console"])
async def send_command(body: CommandRequest, bridge: ConsoleBridge = Depends(get_bridge)):
    """Send one G-code / console command to the printer."""
    try:
        sent = await asyncio.to_thread(bridge.send_command, body.command)
    except CommandRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not sent:
        raise HTTPException(status_code=503, detail="Printer unreachable or command failed")
    return {"success": True, "message": "Command sent"}
