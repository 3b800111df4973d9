# core/app.py - App factory
#
# Builds the shared objects (state store, subscriber registry, broadcaster,
# delivery loop, console bridge, serial link), wires them together and hands
# them to the FastAPI app. Nothing is module-global: every execution context
# (serial thread, delivery task, WebSocket handlers) gets the objects it needs
# from here.
#
# main.py: from core.app import create_app; app = create_app()

import asyncio
import logging
import pathlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from core.broadcaster import EventBroadcaster
from core.config import Settings, settings as default_settings
from core.interfaces.byte_link import ByteLink
from core.printer_state import StateStore
from core.subscribers import SubscriberRegistry
from core.ws_hub import DeliveryLoop, WebSocketTransport

log = logging.getLogger("bridge.api")

# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

_version_file = pathlib.Path(__file__).parent.parent.parent / "VERSION"
if _version_file.exists():
    __version__ = _version_file.read_text().strip()
else:
    __version__ = "1.0.0"

WS_CLOSE_TRY_AGAIN_LATER = 1013


# ---------------------------------------------------------------------------
# Middleware setup
# ---------------------------------------------------------------------------

def _setup_middleware(app: FastAPI, cfg: Settings) -> None:
    """Attach CORS middleware to the app."""
    _cors_origins = [o.strip() for o in cfg.cors_origins.split(",") if o.strip()]
    if not _cors_origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )


# ---------------------------------------------------------------------------
# WebSocket message handling
# ---------------------------------------------------------------------------

async def _handle_subscriber_message(ws: WebSocket, text: str, slot_id: int, app: FastAPI) -> None:
    """Act on one inbound text frame from a subscriber."""
    from modules.console.commands import CommandRejected, MessageKind, classify_message

    cfg: Settings = app.state.settings
    kind, payload = classify_message(text, cfg.handshake_token, cfg.command_prefix)

    if kind is MessageKind.HANDSHAKE:
        app.state.delivery.seed(slot_id, app.state.store)
    elif kind is MessageKind.PING:
        await ws.send_text("pong")
    elif kind is MessageKind.COMMAND:
        try:
            await asyncio.to_thread(app.state.bridge.send_command, payload)
        except CommandRejected as e:
            log.warning(f"Rejected command from subscriber slot {slot_id}: {e}")
    else:
        log.debug(f"Ignoring unknown message from subscriber slot {slot_id}: {text[:40]!r}")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(app_settings: Optional[Settings] = None, link: Optional[ByteLink] = None) -> FastAPI:
    """Create and fully configure the bridge FastAPI application.

    1. Build the state store, subscriber registry, broadcaster and delivery loop.
    2. Build the serial link (unless one is injected, e.g. by tests) and the
       console bridge that ingests from it.
    3. Create the FastAPI instance with a lifespan that starts/stops the
       delivery task and the serial link thread.
    4. Register the WebSocket endpoint, health endpoint and console routes.
    """
    from modules.console import register as console_register
    from modules.console.bridge import ConsoleBridge

    cfg = app_settings or default_settings

    store = StateStore()
    registry = SubscriberRegistry(capacity=cfg.max_subscribers, queue_size=cfg.subscriber_queue_size)
    broadcaster = EventBroadcaster(registry)
    delivery = DeliveryLoop(
        registry, WebSocketTransport(),
        idle_interval=cfg.delivery_idle_interval,
        send_timeout=cfg.send_timeout,
    )

    if link is None:
        from modules.console.serial_link import SerialLink
        link = SerialLink.from_settings(cfg)

    bridge = ConsoleBridge(
        store, broadcaster.publish, link,
        max_line_length=cfg.max_line_length,
        write_timeout=cfg.serial_write_timeout,
        max_command_length=cfg.max_command_length,
    )

    # -----------------------------------------------------------------------
    # Lifespan (delivery task, serial link thread)
    # -----------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        delivery_task = asyncio.create_task(delivery.run())
        link.start()
        log.info(
            f"Bridge started: {registry.capacity} subscriber slots, "
            f"queue size {cfg.subscriber_queue_size}"
        )
        yield
        await asyncio.to_thread(link.stop)
        delivery.stop()
        delivery_task.cancel()
        try:
            await delivery_task
        except asyncio.CancelledError:
            pass

    # -----------------------------------------------------------------------
    # FastAPI instance
    # -----------------------------------------------------------------------
    app = FastAPI(
        title="CoreOne Bridge",
        description="Live printer console telemetry over WebSocket",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = cfg
    app.state.store = store
    app.state.registry = registry
    app.state.broadcaster = broadcaster
    app.state.delivery = delivery
    app.state.bridge = bridge
    app.state.link = link

    _setup_middleware(app, cfg)

    # -----------------------------------------------------------------------
    # Health endpoint
    # -----------------------------------------------------------------------
    @app.get("/health", tags=["System"], include_in_schema=False)
    async def health_root():
        return {
            "status": "ok",
            "version": __version__,
            "printer_connected": link.is_connected,
            "subscribers": registry.active_count,
        }

    # -----------------------------------------------------------------------
    # WebSocket endpoint
    # -----------------------------------------------------------------------
    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        """
        WebSocket endpoint for live printer telemetry.

        On join the subscriber receives the current state as a sequence of
        events, then every live event. Inbound frames: the handshake token
        re-sends the state, "ping" is answered with "pong", and
        "<command_prefix><gcode>" is relayed to the printer.
        """
        await ws.accept()
        slot_id = delivery.join(ws, store)
        if slot_id is None:
            await ws.close(code=WS_CLOSE_TRY_AGAIN_LATER, reason="Too many subscribers")
            return

        try:
            while True:
                text = await ws.receive_text()
                await _handle_subscriber_message(ws, text, slot_id, app)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            log.warning(f"Subscriber slot {slot_id} connection error: {e}", exc_info=True)
        finally:
            delivery.leave(ws)

    # -----------------------------------------------------------------------
    # Module registration
    # -----------------------------------------------------------------------
    console_register(app)

    return app
