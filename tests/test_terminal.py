"""Unit tests covering the terminal surfaces."""

from __future__ import annotations

import io

import pytest

from replterm.terminal import ERASE_SEQUENCE, BufferedTerminal, StreamTerminal


def test_erase_sequence_is_backspace_space_backspace() -> None:
    assert ERASE_SEQUENCE == "\x08\x20\x08"


def test_buffered_terminal_flushes_output_but_keeps_transcript() -> None:
    terminal = BufferedTerminal()
    terminal.write("> ")
    terminal.write_line("1+1")

    assert terminal.read_output() == "> 1+1\n"
    assert terminal.read_output() == ""

    terminal.write("")
    terminal.write_line()

    assert terminal.read_output() == "\n"
    assert terminal.transcript == "> 1+1\n\n"


@pytest.mark.parametrize(
    ("newline", "expected"),
    (
        (None, "> x\nout\n"),
        ("\n", "> x\nout\n"),
        ("\r\n", "> x\r\nout\r\n"),
    ),
)
def test_stream_terminal_translates_newlines(newline: str | None, expected: str) -> None:
    stream = io.StringIO()
    terminal = StreamTerminal(stream, newline=newline)

    terminal.write("> x")
    terminal.write_line()
    terminal.write_line("out")

    assert stream.getvalue() == expected


def test_stream_terminal_flushes_each_write() -> None:
    class _CountingStream(io.StringIO):
        def __init__(self) -> None:
            super().__init__()
            self.flushes = 0

        def flush(self) -> None:
            self.flushes += 1
            super().flush()

    stream = _CountingStream()
    terminal = StreamTerminal(stream)

    terminal.write("a")
    terminal.write("")
    terminal.write_line("b")

    assert stream.flushes == 2
