"""
CoreOne Bridge - printer serial console to WebSocket bridge

Reads the printer's USB serial console, keeps the live printer state and
pushes every change to connected WebSocket clients.

Run:
    uvicorn main:app --host 0.0.0.0 --port 8000
    python main.py
"""

import logging

from core.app import create_app
from core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")
