# core/subscribers.py - fixed-capacity subscriber registry
#
# Slots are allocated once at startup and reused through a free list; the
# registry never grows. Every read or write of slot membership and every
# queue operation performed through the registry happens under its lock.
# This lock is independent of the state store lock and the two are never
# held together.

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from core.events import BridgeEvent

log = logging.getLogger("bridge.subscribers")


@dataclass
class Subscriber:
    """One observer slot. The queue is bounded and never blocks."""

    slot_id: int
    queue: "queue.Queue[BridgeEvent]"
    handle: Any = None
    active: bool = False
    dropped: int = 0
    _dropping: bool = field(default=False, repr=False)


class SubscriberRegistry:
    """
    Arena of subscriber slots indexed by small stable integers.

    add() hands out the oldest freed slot id; remove() deactivates the slot
    and discards undelivered events before returning it to the free list.
    """

    def __init__(self, capacity: int = 8, queue_size: int = 64):
        if capacity < 1 or queue_size < 1:
            raise ValueError("capacity and queue_size must be positive")
        self._lock = threading.Lock()
        self._slots = [
            Subscriber(slot_id=i, queue=queue.Queue(maxsize=queue_size))
            for i in range(capacity)
        ]
        self._free: deque[int] = deque(range(capacity))

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def active_count(self) -> int:
        with self._lock:
            return self.capacity - len(self._free)

    def add(self, handle: Any) -> Optional[int]:
        """Claim a free slot for handle. Returns None when the registry is full."""
        with self._lock:
            if not self._free:
                log.warning(f"Subscriber registry full ({self.capacity} slots), rejecting connection")
                return None
            slot_id = self._free.popleft()
            sub = self._slots[slot_id]
            sub.handle = handle
            sub.active = True
            sub.dropped = 0
            sub._dropping = False
        log.info(f"Subscriber joined on slot {slot_id}")
        return slot_id

    def remove(self, handle: Any) -> bool:
        """Release the slot held by handle, discarding its queued events."""
        with self._lock:
            sub = self._find(handle)
            if sub is None:
                return False
            sub.active = False
            sub.handle = None
            discarded = _drain(sub.queue)
            self._free.append(sub.slot_id)
        log.info(f"Subscriber left slot {sub.slot_id} ({discarded} undelivered events discarded)")
        return True

    def slot_of(self, handle: Any) -> Optional[int]:
        with self._lock:
            sub = self._find(handle)
            return sub.slot_id if sub else None

    def active_slot_ids(self) -> list[int]:
        with self._lock:
            return [s.slot_id for s in self._slots if s.active]

    def for_each_active(self, fn: Callable[[Subscriber], Any]) -> int:
        """Run fn against every active slot. Returns the number visited."""
        with self._lock:
            visited = 0
            for sub in self._slots:
                if sub.active:
                    fn(sub)
                    visited += 1
            return visited

    def enqueue(self, slot_id: int, event: BridgeEvent) -> bool:
        """Non-blocking push to one slot. Full queue drops the new event."""
        with self._lock:
            sub = self._slots[slot_id]
            if not sub.active:
                return False
            return offer(sub, event)

    def next_event(self, slot_id: int) -> Optional[tuple[Any, BridgeEvent]]:
        """Non-blocking pop from one slot. Returns (handle, event) or None."""
        with self._lock:
            sub = self._slots[slot_id]
            if not sub.active:
                return None
            try:
                event = sub.queue.get_nowait()
            except queue.Empty:
                return None
            return sub.handle, event

    def _find(self, handle: Any) -> Optional[Subscriber]:
        for sub in self._slots:
            if sub.active and sub.handle is handle:
                return sub
        return None


def offer(sub: Subscriber, event: BridgeEvent) -> bool:
    """Push event onto sub's queue without blocking (drop-newest when full)."""
    try:
        sub.queue.put_nowait(event)
    except queue.Full:
        sub.dropped += 1
        if not sub._dropping:
            sub._dropping = True
            log.warning(f"Subscriber slot {sub.slot_id} queue full, dropping new events")
        else:
            log.debug(f"Subscriber slot {sub.slot_id} dropped {event.type} event")
        return False
    if sub._dropping:
        sub._dropping = False
        log.warning(f"Subscriber slot {sub.slot_id} recovered after {sub.dropped} dropped events")
    return True


def _drain(q: "queue.Queue") -> int:
    count = 0
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            return count
        count += 1
