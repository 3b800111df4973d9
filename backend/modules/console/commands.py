"""Subscriber message classification and console command validation."""

from enum import Enum
from typing import Optional, Tuple

DEFAULT_MAX_COMMAND_LENGTH = 255


class CommandRejected(ValueError):
    """Command text cannot be sent to the printer."""


class MessageKind(Enum):
    HANDSHAKE = "handshake"
    PING = "ping"
    COMMAND = "command"
    UNKNOWN = "unknown"


def classify_message(text: str, handshake_token: str = "hello",
                     command_prefix: str = "cmd:") -> Tuple[MessageKind, Optional[str]]:
    """
    Sort an inbound WebSocket text frame.

    Returns (kind, payload); payload is the command text for COMMAND and
    None otherwise.
    """
    if text == handshake_token:
        return MessageKind.HANDSHAKE, None
    if text == "ping":
        return MessageKind.PING, None
    if text.startswith(command_prefix):
        return MessageKind.COMMAND, text[len(command_prefix):]
    return MessageKind.UNKNOWN, None


def validate_command(command: str, max_length: int = DEFAULT_MAX_COMMAND_LENGTH) -> str:
    """
    Check a single console command (e.g. "M104 S215").

    The text is forwarded verbatim, so it must be one non-blank line that
    fits the printer's command buffer.
    """
    if not command or not command.strip():
        raise CommandRejected("Command is empty")
    if "\n" in command or "\r" in command:
        raise CommandRejected("Command must be a single line")
    if len(command) > max_length:
        raise CommandRejected(f"Command longer than {max_length} characters")
    return command
