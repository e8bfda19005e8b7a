"""Drive a session from a local text stream."""

from __future__ import annotations

import contextlib
import logging
import sys
from typing import IO, Iterator

from ..session_controller import SessionController

__all__ = ["END_OF_TRANSMISSION", "cbreak_input", "drive_session"]

logger = logging.getLogger(__name__)

END_OF_TRANSMISSION = "\x04"


@contextlib.contextmanager
def cbreak_input(stream: IO[str]) -> Iterator[bool]:
    """Switch a tty ``stream`` into cbreak mode for the duration of the block.

    Yields ``False`` and leaves non-tty streams untouched.
    """

    isatty = getattr(stream, "isatty", None)
    if not callable(isatty) or not isatty():
        yield False
        return

    import termios
    import tty

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd, termios.TCSANOW)
        yield True
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def drive_session(
    controller: SessionController,
    *,
    input_stream: IO[str] = sys.stdin,
) -> int:
    """Feed ``input_stream`` into ``controller`` one character at a time.

    Stops at EOF, on an end-of-transmission character typed on an empty line,
    or on ``KeyboardInterrupt``. Returns the number of submissions made.
    """

    with cbreak_input(input_stream) as interactive:
        logger.debug("driving session (interactive=%s)", interactive)
        while True:
            try:
                char = input_stream.read(1)
            except KeyboardInterrupt:  # pragma: no cover - user interrupt
                controller.terminal.write_line()
                break
            if char == "":
                break
            if char == END_OF_TRANSMISSION:
                if not controller.line_buffer and not controller.submission_in_flight:
                    controller.terminal.write_line()
                    break
                continue
            controller.feed(char)
    return controller.submissions
