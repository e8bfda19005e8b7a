"""Evaluator port contract and helpers shared by evaluator implementations."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Callable, Protocol

__all__ = [
    "DeferredEvaluator",
    "EvaluatorEvents",
    "EvaluatorPort",
    "LineSplitter",
]

logger = logging.getLogger(__name__)


class EvaluatorEvents(Protocol):
    """Listener notified about the outcome of each submission.

    A submission resolves with exactly one of ``on_continuation_requested``
    or ``on_session_reset``; any output lines and errors are delivered first.
    """

    def on_continuation_requested(self) -> None:
        """More input is needed before the accumulated text can run."""

    def on_session_reset(self) -> None:
        """The command finished; a fresh one starts."""

    def on_output_line(self, text: str) -> None:
        """One line of evaluator output, without its newline."""

    def on_evaluation_error(self, message: str) -> None:
        """The evaluator rejected or failed on the submitted text."""


class EvaluatorPort(Protocol):
    """Service evaluating accumulated input on behalf of a session."""

    def subscribe(self, listener: EvaluatorEvents) -> None:
        """Route events for future submissions to ``listener``."""

    def submit(self, text: str, hint: bool) -> None:
        """Evaluate ``text``.

        ``hint`` reports whether the last typed line was non-empty. It is
        advisory; completeness is the evaluator's call.
        """


class LineSplitter(io.TextIOBase):
    """Text sink that hands each completed line to ``write_line``."""

    def __init__(self, write_line: Callable[[str], None]) -> None:
        super().__init__()
        self._write_line = write_line
        self._pending: list[str] = []

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        start = 0
        while True:
            index = text.find("\n", start)
            if index < 0:
                break
            self._pending.append(text[start:index])
            line = "".join(self._pending)
            self._pending.clear()
            self._write_line(line)
            start = index + 1
        if start < len(text):
            self._pending.append(text[start:])
        return len(text)

    def flush_partial(self) -> None:
        """Emit a trailing line that never received its newline."""

        if not self._pending:
            return
        line = "".join(self._pending)
        self._pending.clear()
        self._write_line(line)


class DeferredEvaluator:
    """Adapter that runs each submission on a later event-loop turn.

    ``SystemExit`` raised by the wrapped evaluator is handed to ``on_exit``
    when one is set, so it never escapes through the event loop.
    """

    def __init__(
        self,
        evaluator: EvaluatorPort,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        on_exit: Callable[[], None] | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.on_exit = on_exit
        self._loop = loop

    def subscribe(self, listener: EvaluatorEvents) -> None:
        self.evaluator.subscribe(listener)

    def submit(self, text: str, hint: bool) -> None:
        loop = self._loop
        if loop is None:
            loop = asyncio.get_running_loop()
            self._loop = loop
        logger.debug("deferring submission of %d characters", len(text))
        loop.call_soon(self._run, text, hint)

    def _run(self, text: str, hint: bool) -> None:
        try:
            self.evaluator.submit(text, hint)
        except SystemExit:
            if self.on_exit is None:
                raise
            logger.info("deferred submission requested exit")
            self.on_exit()
