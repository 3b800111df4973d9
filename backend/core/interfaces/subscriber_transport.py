# core/interfaces/subscriber_transport.py
from abc import ABC, abstractmethod
from typing import Any


class SubscriberTransport(ABC):
    """Push channel to connected observers. Handles are opaque to the core."""

    @abstractmethod
    async def send_text(self, handle: Any, payload: str) -> None: ...
