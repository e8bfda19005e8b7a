"""Public replterm API."""
from __future__ import annotations

from .evaluator import DeferredEvaluator, EvaluatorEvents, EvaluatorPort, LineSplitter
from .keys import BACKSPACE, ENTER, Key, KeyDecoder, KeyEvent, decode_key
from .session_config import (
    OverlapPolicy,
    SessionConfig,
    SessionConfigError,
    load_session_config,
)
from .session_controller import PromptMode, SessionController, SubmissionInFlightError
from .terminal import ERASE_SEQUENCE, BufferedTerminal, StreamTerminal, TerminalSurface

__all__ = [
    "BACKSPACE",
    "BufferedTerminal",
    "DeferredEvaluator",
    "ENTER",
    "ERASE_SEQUENCE",
    "EvaluatorEvents",
    "EvaluatorPort",
    "Key",
    "KeyDecoder",
    "KeyEvent",
    "LineSplitter",
    "OverlapPolicy",
    "PromptMode",
    "SessionConfig",
    "SessionConfigError",
    "SessionController",
    "StreamTerminal",
    "SubmissionInFlightError",
    "TerminalSurface",
    "decode_key",
    "load_session_config",
]
