# core/broadcaster.py - fan-out of console events to subscriber queues
#
# Called from the serial ingestion thread. Never blocks on a subscriber: a
# full queue loses the new event and the publisher carries on.

from core.events import BridgeEvent
from core.subscribers import SubscriberRegistry, offer


class EventBroadcaster:
    """Publishes each event to every active subscriber's private queue."""

    def __init__(self, registry: SubscriberRegistry):
        self.registry = registry
        self.published = 0

    def publish(self, event: BridgeEvent) -> int:
        """Offer event to all active subscribers. Returns how many accepted it."""
        accepted = 0

        def _push(sub) -> None:
            nonlocal accepted
            if offer(sub, event):
                accepted += 1

        self.registry.for_each_active(_push)
        self.published += 1
        return accepted
