"""
Console Bridge - owner of the ingestion path.

Receives link callbacks (bytes, connect, disconnect, error) from the serial
thread, assembles lines, runs the parser and publishes the results. Also
relays subscriber commands back to the printer.
"""

import logging
from typing import Any, Callable

from core.events import BridgeEvent, ErrorEvent
from core.interfaces.byte_link import ByteLink, LinkUnavailableError, LinkWriteError
from core.line_assembler import DEFAULT_MAX_LINE_LENGTH, LineAssembler
from core.printer_state import StateStore
from modules.console.commands import DEFAULT_MAX_COMMAND_LENGTH, validate_command
from modules.console.parser import ConsoleParser

log = logging.getLogger("bridge.console")

COMMAND_TERMINATOR = b"\n"


class ConsoleBridge:
    """Implements LinkListener for a ByteLink."""

    def __init__(self, store: StateStore, publish: Callable[[BridgeEvent], Any], link: ByteLink,
                 max_line_length: int = DEFAULT_MAX_LINE_LENGTH, write_timeout: float = 1.0,
                 max_command_length: int = DEFAULT_MAX_COMMAND_LENGTH):
        self.store = store
        self.link = link
        self.write_timeout = write_timeout
        self.max_command_length = max_command_length
        self._publish = publish
        self.assembler = LineAssembler(max_length=max_line_length)
        self.parser = ConsoleParser(store, publish)
        link.set_listener(self)

    @property
    def connected(self) -> bool:
        return self.link.is_connected

    # ==================== Link callbacks ====================

    def on_data(self, data: bytes) -> None:
        for line in self.assembler.feed(data):
            try:
                self.parser.handle_line(line)
            except Exception as e:
                # One bad line must not stop ingestion
                log.error(f"Failed to process console line {line!r}: {e}", exc_info=True)

    def on_connect(self) -> None:
        self.assembler.reset()
        self._publish(self.store.set_connected(True))

    def on_disconnect(self) -> None:
        self.assembler.reset()
        self._publish(self.store.set_connected(False))

    def on_error(self, message: str) -> None:
        log.error(f"Printer link error: {message}")
        self._publish(ErrorEvent(message=message))

    # ==================== Commands ====================

    def send_command(self, command: str) -> bool:
        """
        Forward one console command to the printer.

        Raises CommandRejected for invalid text. Returns False when no printer
        is connected (the command is dropped) or the write failed.
        """
        command = validate_command(command, self.max_command_length)
        if not self.link.is_connected:
            log.debug(f"No printer connected, dropping command {command!r}")
            return False
        try:
            self.link.send(command.encode("utf-8") + COMMAND_TERMINATOR, self.write_timeout)
        except (LinkUnavailableError, LinkWriteError) as e:
            log.warning(f"Command {command!r} not sent: {e}")
            return False
        log.info(f"Sent command {command!r}")
        return True
