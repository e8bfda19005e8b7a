"""Session controller that turns keystrokes into evaluator submissions."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Deque

from .evaluator import EvaluatorPort
from .keys import Key, KeyDecoder, KeyEvent
from .session_config import OverlapPolicy, SessionConfig
from .terminal import ERASE_SEQUENCE, TerminalSurface

__all__ = ["PromptMode", "SessionController", "SubmissionInFlightError"]

logger = logging.getLogger(__name__)


class PromptMode(Enum):
    """Which prompt the session shows, and so which phase it is in."""

    PRIMARY = auto()
    CONTINUATION = auto()


class SubmissionInFlightError(RuntimeError):
    """Raised for keys arriving before the previous submission resolved."""


@dataclass(slots=True)
class SessionController:
    """Line-editing state machine bridging a terminal and an evaluator.

    The controller subscribes itself to ``evaluator`` and writes the primary
    prompt on construction. Every Enter submits the whole accumulated command;
    the evaluator answers with output lines and errors followed by either a
    continuation request or a session reset.
    """

    terminal: TerminalSurface
    evaluator: EvaluatorPort
    config: SessionConfig = field(default_factory=SessionConfig)

    _accumulation: str = field(init=False, default="", repr=False)
    _line: list[str] = field(init=False, default_factory=list, repr=False)
    _mode: PromptMode = field(init=False, default=PromptMode.PRIMARY)
    _in_flight: bool = field(init=False, default=False)
    _pending_keys: Deque[KeyEvent] = field(init=False, default_factory=deque, repr=False)
    _replaying: bool = field(init=False, default=False, repr=False)
    _submissions: int = field(init=False, default=0)
    _decoder: KeyDecoder = field(init=False, default_factory=KeyDecoder, repr=False)

    def __post_init__(self) -> None:
        self.evaluator.subscribe(self)
        self.on_session_reset()

    # Public API ---------------------------------------------------------

    @property
    def accumulation_buffer(self) -> str:
        """Text submitted so far for the current multi-line command."""

        return self._accumulation

    @property
    def line_buffer(self) -> str:
        """Text of the line currently being edited."""

        return "".join(self._line)

    @property
    def prompt_mode(self) -> PromptMode:
        return self._mode

    @property
    def submission_in_flight(self) -> bool:
        """``True`` between an Enter and the evaluator's resolution."""

        return self._in_flight

    @property
    def pending_keys(self) -> tuple[KeyEvent, ...]:
        return tuple(self._pending_keys)

    @property
    def submissions(self) -> int:
        """Number of times :meth:`EvaluatorPort.submit` has been called."""

        return self._submissions

    def feed(self, text: str) -> None:
        """Decode raw terminal ``text`` and apply each resulting key."""

        for event in self._decoder.decode(text):
            self.on_key(event)

    def on_key(self, key: object) -> None:
        """Apply one decoded key event.

        Raises :class:`SubmissionInFlightError` under the ``reject`` overlap
        policy when a submission is still awaiting its resolution. Anything
        that is not a :class:`KeyEvent` is dropped.
        """

        if not isinstance(key, KeyEvent):
            logger.debug("dropping malformed key event %r", key)
            return
        if self._in_flight:
            if self.config.overlap_policy is OverlapPolicy.REJECT:
                raise SubmissionInFlightError(
                    "previous submission has not been resolved by the evaluator"
                )
            self._pending_keys.append(key)
            return
        self._apply(key)

    def on_continuation_requested(self) -> None:
        self._accumulation += self.config.line_separator
        self._line.clear()
        self._mode = PromptMode.CONTINUATION
        self.terminal.write(self.config.continuation_prompt)
        self._resolve("continuation requested")

    def on_session_reset(self) -> None:
        self.terminal.write(self.config.primary_prompt)
        self._accumulation = ""
        self._line.clear()
        self._mode = PromptMode.PRIMARY
        self._resolve("session reset")

    def on_output_line(self, text: str) -> None:
        self.terminal.write_line(text)

    def on_evaluation_error(self, message: str) -> None:
        self.terminal.write_line(self.config.error_prefix + message)

    def reset(self) -> None:
        """Abandon the current command, queued keys included, and re-prompt."""

        self._pending_keys.clear()
        self._in_flight = False
        self._decoder.reset()
        self.on_session_reset()

    # Internal helpers ---------------------------------------------------

    def _apply(self, event: KeyEvent) -> None:
        if event.key is Key.ENTER:
            self._submit()
        elif event.key is Key.BACKSPACE:
            if self._line:
                self.terminal.write(ERASE_SEQUENCE)
                self._line.pop()
        elif len(event.char) == 1 and event.char >= " ":
            self.terminal.write(event.char)
            self._line.append(event.char)
        else:
            logger.debug("ignoring non-printable key %r", event.char)

    def _submit(self) -> None:
        self.terminal.write_line()
        has_content = bool(self._line)
        self._accumulation += "".join(self._line)
        self._line.clear()
        self._in_flight = True
        self._submissions += 1
        text = self._accumulation
        logger.debug(
            "submission %d: %d characters, hint=%s",
            self._submissions,
            len(text),
            has_content,
        )
        try:
            self.evaluator.submit(text, has_content)
        except BaseException:
            self._in_flight = False
            raise

    def _resolve(self, reason: str) -> None:
        if self._in_flight:
            logger.debug("submission %d resolved: %s", self._submissions, reason)
        self._in_flight = False
        if self._replaying:
            return
        self._replaying = True
        try:
            while self._pending_keys and not self._in_flight:
                self._apply(self._pending_keys.popleft())
        finally:
            self._replaying = False
