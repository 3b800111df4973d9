# core/line_assembler.py - byte stream to console line reassembly
#
# Serial reads arrive in arbitrary chunks; read boundaries are not line
# boundaries. The partial line survives between feed() calls.

import logging
from typing import Iterator

log = logging.getLogger("bridge.lines")

DEFAULT_TERMINATORS = b"\r\n"
DEFAULT_MAX_LINE_LENGTH = 255


class LineAssembler:
    """
    Turns a raw byte stream into complete text lines.

    Any terminator byte ends the current line. Empty lines (CRLF pairs,
    repeated newlines) are suppressed. A line that reaches max_length without
    a terminator is flushed as-is and assembly restarts, so memory stays
    bounded on garbage or terminator-free input.
    """

    def __init__(self, max_length: int = DEFAULT_MAX_LINE_LENGTH,
                 terminators: bytes = DEFAULT_TERMINATORS, encoding: str = "utf-8"):
        if max_length < 1:
            raise ValueError("max_length must be positive")
        self.max_length = max_length
        self.terminators = frozenset(terminators)
        self.encoding = encoding
        self._buf = bytearray()
        self.overflow_count = 0

    @property
    def pending(self) -> int:
        """Number of bytes held for the line in progress."""
        return len(self._buf)

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Consume a chunk and yield each line it completes.

        The generator is lazy: bytes are consumed as it is iterated, so the
        caller must exhaust it before feeding the next chunk.
        """
        for byte in data:
            if byte in self.terminators:
                if self._buf:
                    yield self._take()
                continue

            self._buf.append(byte)
            if len(self._buf) >= self.max_length:
                self.overflow_count += 1
                log.warning(
                    f"Console line exceeded {self.max_length} bytes without a terminator, "
                    "flushing truncated line"
                )
                yield self._take()

    def reset(self) -> None:
        """Drop any partial line, e.g. after the link went away."""
        self._buf.clear()

    def _take(self) -> str:
        line = self._buf.decode(self.encoding, errors="replace")
        self._buf.clear()
        return line
