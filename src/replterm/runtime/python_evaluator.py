"""Evaluator port implementation backed by the running Python interpreter."""

from __future__ import annotations

import codeop
import contextlib
import logging
import traceback
from types import CodeType
from typing import Any, MutableMapping

from ..evaluator import EvaluatorEvents, LineSplitter

__all__ = ["PythonEvaluator", "UNEXPECTED_END_MESSAGE"]

logger = logging.getLogger(__name__)

UNEXPECTED_END_MESSAGE = "unexpected end of input"


def _format_exception(exc: BaseException) -> str:
    return traceback.format_exception_only(type(exc), exc)[-1].strip()


class PythonEvaluator:
    """Compile and run accumulated session input in a persistent namespace.

    Incomplete source asks for continuation while the last typed line had
    content; an empty line closes the block instead, matching the blank-line
    convention of the interactive interpreter.
    """

    def __init__(
        self,
        namespace: MutableMapping[str, Any] | None = None,
        *,
        filename: str = "<session>",
    ) -> None:
        if namespace is None:
            namespace = {"__name__": "__console__", "__doc__": None}
        self.namespace = namespace
        self.filename = filename
        self._compiler = codeop.CommandCompiler()
        self._listener: EvaluatorEvents | None = None

    def subscribe(self, listener: EvaluatorEvents) -> None:
        self._listener = listener

    def submit(self, text: str, hint: bool) -> None:
        listener = self._listener
        if listener is None:
            raise RuntimeError("no listener subscribed to the evaluator")

        if not text.strip():
            listener.on_session_reset()
            return

        try:
            code = self._compile(text, hint)
        except (SyntaxError, ValueError, OverflowError) as exc:
            logger.debug("compile failed: %s", exc)
            listener.on_evaluation_error(_format_exception(exc))
            listener.on_session_reset()
            return

        if code is None:
            if hint:
                listener.on_continuation_requested()
                return
            listener.on_evaluation_error(UNEXPECTED_END_MESSAGE)
            listener.on_session_reset()
            return

        self._run(code, listener)
        listener.on_session_reset()

    def _compile(self, text: str, hint: bool) -> CodeType | None:
        code = self._compiler(text, self.filename, "single")
        if code is None and not hint:
            # An empty line terminates the pending block.
            code = self._compiler(text + "\n", self.filename, "single")
        return code

    def _run(self, code: CodeType, listener: EvaluatorEvents) -> None:
        splitter = LineSplitter(listener.on_output_line)
        error: Exception | None = None
        with contextlib.redirect_stdout(splitter), contextlib.redirect_stderr(splitter):
            try:
                exec(code, self.namespace)
            except Exception as exc:
                error = exc
        splitter.flush_partial()
        if error is not None:
            logger.debug("evaluation raised %s", type(error).__name__)
            listener.on_evaluation_error(_format_exception(error))
