"""Terminal surfaces the session controller renders into."""

from __future__ import annotations

from collections import deque
from typing import IO, Deque, Protocol

__all__ = [
    "ERASE_SEQUENCE",
    "BufferedTerminal",
    "StreamTerminal",
    "TerminalSurface",
]


# Cursor back, blank the cell, cursor back again.
ERASE_SEQUENCE = "\b \b"


class TerminalSurface(Protocol):
    """Write primitives required by :class:`SessionController`."""

    def write(self, text: str) -> None:
        """Emit ``text`` without appending a newline."""

    def write_line(self, text: str = "") -> None:
        """Emit ``text`` followed by a newline."""


class BufferedTerminal:
    """In-memory surface that queues output until it is read back."""

    def __init__(self) -> None:
        self.output: Deque[str] = deque()
        self._transcript: list[str] = []

    def write(self, text: str) -> None:
        if not text:
            return
        self.output.append(text)
        self._transcript.append(text)

    def write_line(self, text: str = "") -> None:
        self.write(text + "\n")

    @property
    def transcript(self) -> str:
        """Everything written since construction, including flushed output."""

        return "".join(self._transcript)

    def read_output(self) -> str:
        """Flush buffered output and return it as a string."""

        buffer: list[str] = []
        while self.output:
            buffer.append(self.output.popleft())
        return "".join(buffer)


class StreamTerminal:
    """Surface that writes through to a text stream.

    ``newline`` replaces every ``\\n`` on the way out; raw-mode ttys and
    Telnet clients need ``"\\r\\n"`` to return the carriage.
    """

    def __init__(self, stream: IO[str], *, newline: str | None = None) -> None:
        self.stream = stream
        self.newline = newline

    def translate_outgoing(self, text: str) -> str:
        if self.newline is None or self.newline == "\n":
            return text
        return text.replace("\n", self.newline)

    def write(self, text: str) -> None:
        if not text:
            return
        self.stream.write(self.translate_outgoing(text))
        self.stream.flush()

    def write_line(self, text: str = "") -> None:
        self.write(text + "\n")
