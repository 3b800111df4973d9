"""
WebSocket Event Hub - delivery of queued console events to subscribers.

The serial ingestion thread fills each subscriber's bounded queue (see
core/broadcaster.py). DeliveryLoop runs as a background task on the FastAPI
event loop. Each pass takes one event from every subscriber that has no send
in flight and starts sending it as its own task, so a peer that stops reading
only holds up its own queue. Every send is bounded by send_timeout.

A failed or timed-out send is logged and the subscriber stays registered:
removal is driven by the WebSocket endpoint's own disconnect handling so
teardown never races an in-flight send.
"""

import asyncio
import logging
from typing import Any, Iterable, Optional

from fastapi import WebSocket

from core.events import BridgeEvent
from core.interfaces.subscriber_transport import SubscriberTransport
from core.printer_state import StateStore
from core.subscribers import SubscriberRegistry

log = logging.getLogger("bridge.ws_hub")

DEFAULT_IDLE_INTERVAL = 0.02  # seconds between passes when nothing was delivered
DEFAULT_SEND_TIMEOUT = 5.0    # seconds one send may take before it counts as failed


class WebSocketTransport(SubscriberTransport):
    """Subscriber handles are FastAPI WebSocket objects."""

    async def send_text(self, handle: WebSocket, payload: str) -> None:
        await handle.send_text(payload)


class DeliveryLoop:
    """Per-subscriber dequeue-and-transmit cycle."""

    def __init__(self, registry: SubscriberRegistry, transport: SubscriberTransport,
                 idle_interval: float = DEFAULT_IDLE_INTERVAL,
                 send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.registry = registry
        self.transport = transport
        self.idle_interval = idle_interval
        self.send_timeout = send_timeout
        self.send_failures = 0
        self._running = False
        self._inflight: dict[int, asyncio.Task] = {}

    # ==================== Membership ====================

    def join(self, handle: Any, store: StateStore) -> Optional[int]:
        """
        Register a new subscriber and seed its queue with the current state.

        Returns the slot id, or None when the registry is full (the caller
        rejects the connection).
        """
        slot_id = self.registry.add(handle)
        if slot_id is None:
            return None
        self.seed(slot_id, store)
        return slot_id

    def seed(self, slot_id: int, store: StateStore) -> int:
        """
        Queue a snapshot-as-events sequence for one subscriber.

        A live update published between reading the snapshot and queueing it
        would land ahead of the older snapshot value, so the store is read
        again and any dimension that moved meanwhile is queued once more.
        """
        events = store.snapshot_events()
        queued = self._enqueue_all(slot_id, events)
        while True:
            latest = store.snapshot_events()
            changed = [new for old, new in zip(events, latest) if new != old]
            if not changed:
                break
            queued += self._enqueue_all(slot_id, changed)
            events = latest
        log.debug(f"Seeded slot {slot_id} with {queued} snapshot events")
        return queued

    def _enqueue_all(self, slot_id: int, events: Iterable[BridgeEvent]) -> int:
        queued = 0
        for event in events:
            if self.registry.enqueue(slot_id, event):
                queued += 1
        return queued

    def leave(self, handle: Any) -> bool:
        slot_id = self.registry.slot_of(handle)
        if slot_id is not None:
            task = self._inflight.pop(slot_id, None)
            if task is not None:
                task.cancel()
        return self.registry.remove(handle)

    # ==================== Delivery ====================

    async def run_once(self) -> int:
        """
        One pass over all active subscribers. Returns sends completed.

        Starts a send for every subscriber that is idle and has an event
        queued, then waits up to idle_interval for the first send to finish.
        """
        for slot_id in self.registry.active_slot_ids():
            if slot_id in self._inflight:
                continue
            item = self.registry.next_event(slot_id)
            if item is None:
                continue
            handle, event = item
            self._inflight[slot_id] = asyncio.create_task(self._send(slot_id, handle, event))

        if not self._inflight:
            return 0
        await asyncio.wait(
            list(self._inflight.values()),
            timeout=self.idle_interval,
            return_when=asyncio.FIRST_COMPLETED,
        )
        return self._collect()

    async def _send(self, slot_id: int, handle: Any, event: BridgeEvent) -> bool:
        try:
            await asyncio.wait_for(
                self.transport.send_text(handle, event.to_json()),
                timeout=self.send_timeout,
            )
            return True
        except asyncio.TimeoutError:
            self.send_failures += 1
            log.warning(f"Send to subscriber slot {slot_id} timed out after {self.send_timeout}s")
        except Exception as e:
            self.send_failures += 1
            log.warning(f"Send to subscriber slot {slot_id} failed: {e}", exc_info=True)
        return False

    def _collect(self) -> int:
        delivered = 0
        for slot_id, task in list(self._inflight.items()):
            if not task.done():
                continue
            del self._inflight[slot_id]
            if not task.cancelled() and task.result():
                delivered += 1
        return delivered

    async def run(self) -> None:
        """Background task: deliver until stop() is called or the task is cancelled."""
        self._running = True
        log.info("Delivery loop started")
        try:
            while self._running:
                delivered = await self.run_once()
                await asyncio.sleep(0 if delivered else self.idle_interval)
        finally:
            self._running = False
            pending = list(self._inflight.values())
            self._inflight.clear()
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            log.info("Delivery loop stopped")

    def stop(self) -> None:
        self._running = False
