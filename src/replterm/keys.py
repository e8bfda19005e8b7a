"""Decode raw terminal text into the key events consumed by the session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator

__all__ = ["BACKSPACE", "ENTER", "Key", "KeyDecoder", "KeyEvent", "decode_key"]


_ENTER_CHARS = frozenset("\r\n")
_BACKSPACE_CHARS = frozenset("\x7f\b")
_ESCAPE = "\x1b"


class Key(Enum):
    """Logical key identities understood by :class:`SessionController`."""

    CHARACTER = auto()
    ENTER = auto()
    BACKSPACE = auto()


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """A single decoded keystroke."""

    key: Key
    char: str = ""

    @classmethod
    def character(cls, char: str) -> "KeyEvent":
        if len(char) != 1:
            raise ValueError(f"expected a single character, received {char!r}")
        return cls(Key.CHARACTER, char)


ENTER = KeyEvent(Key.ENTER)
BACKSPACE = KeyEvent(Key.BACKSPACE)


def decode_key(char: str) -> KeyEvent | None:
    """Decode one character, returning ``None`` for keys the session drops."""

    if char in _ENTER_CHARS:
        return ENTER
    if char in _BACKSPACE_CHARS:
        return BACKSPACE
    if len(char) == 1 and char >= " ":
        return KeyEvent(Key.CHARACTER, char)
    return None


class _Mode(Enum):
    TEXT = auto()
    AFTER_CR = auto()
    ESCAPE = auto()
    CSI = auto()
    SS3 = auto()


@dataclass(slots=True)
class KeyDecoder:
    """Stateful decoder that survives sequences split across reads.

    Carriage return pairs (``\\r\\n`` and the Telnet ``\\r\\0``) collapse into
    a single Enter and ANSI escape sequences are swallowed whole, so cursor
    keys never leak printable fragments such as ``[A`` into the line.
    """

    _mode: _Mode = field(init=False, default=_Mode.TEXT, repr=False)

    def decode(self, text: str) -> Iterator[KeyEvent]:
        for char in text:
            event = self._step(char)
            if event is not None:
                yield event

    def reset(self) -> None:
        self._mode = _Mode.TEXT

    def _step(self, char: str) -> KeyEvent | None:
        mode = self._mode
        if mode is _Mode.ESCAPE:
            if char == "[":
                self._mode = _Mode.CSI
                return None
            if char == "O":
                self._mode = _Mode.SS3
                return None
            # Alt-modified keys arrive as ESC plus the plain character.
            self._mode = _Mode.TEXT
        elif mode is _Mode.CSI:
            # Parameter and intermediate bytes run until a final byte in 0x40-0x7e.
            if "\x40" <= char <= "\x7e":
                self._mode = _Mode.TEXT
            return None
        elif mode is _Mode.SS3:
            self._mode = _Mode.TEXT
            return None
        elif mode is _Mode.AFTER_CR:
            self._mode = _Mode.TEXT
            if char in ("\n", "\0"):
                return None

        if char == _ESCAPE:
            self._mode = _Mode.ESCAPE
            return None
        if char == "\r":
            self._mode = _Mode.AFTER_CR
        return decode_key(char)
