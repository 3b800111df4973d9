# core/interfaces/byte_link.py
from abc import ABC, abstractmethod
from typing import Optional, Protocol


class LinkUnavailableError(Exception):
    """No printer is attached to the link."""


class LinkWriteError(Exception):
    """A write to the printer failed or timed out."""


class LinkListener(Protocol):
    """Callbacks a ByteLink drives. Invoked from the link's own thread."""

    def on_data(self, data: bytes) -> None: ...

    def on_connect(self) -> None: ...

    def on_disconnect(self) -> None: ...

    def on_error(self, message: str) -> None: ...


class ByteLink(ABC):
    """Raw byte source/sink to the printer console."""

    _listener: Optional[LinkListener] = None

    def set_listener(self, listener: LinkListener) -> None:
        self._listener = listener

    @property
    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def send(self, data: bytes, timeout: float) -> None:
        """Write bytes. Raises LinkUnavailableError / LinkWriteError."""
        ...

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...
