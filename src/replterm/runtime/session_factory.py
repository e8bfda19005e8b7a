"""Factory helpers for constructing runtime session components."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable

from ..evaluator import EvaluatorPort
from ..session_config import SessionConfig, load_session_config
from ..session_controller import SessionController
from ..terminal import TerminalSurface
from .python_evaluator import PythonEvaluator

__all__ = [
    "DEFAULT_RUNTIME_SESSION_FACTORY",
    "RuntimeSessionFactory",
    "build_session_config",
]


ConfigBuilder = Callable[[argparse.Namespace], SessionConfig]
EvaluatorBuilder = Callable[[], EvaluatorPort]


def build_session_config(args: argparse.Namespace) -> SessionConfig:
    """Load ``--config`` when given and layer CLI overrides on top."""

    config_path: Path | None = getattr(args, "config", None)
    config = load_session_config(config_path) if config_path is not None else SessionConfig()
    return config.with_overrides(overlap_policy=getattr(args, "overlap_policy", None))


class RuntimeSessionFactory:
    """Factory orchestrating the construction of runtime sessions."""

    def __init__(
        self,
        *,
        config_builder: ConfigBuilder = build_session_config,
        evaluator_builder: EvaluatorBuilder = PythonEvaluator,
    ) -> None:
        self._config_builder = config_builder
        self._evaluator_builder = evaluator_builder

    def build_config(self, args: argparse.Namespace) -> SessionConfig:
        return self._config_builder(args)

    def build_evaluator(self) -> EvaluatorPort:
        """Return a fresh evaluator; every session gets its own namespace."""

        return self._evaluator_builder()

    def create_controller(
        self,
        terminal: TerminalSurface,
        *,
        config: SessionConfig,
        evaluator: EvaluatorPort | None = None,
    ) -> SessionController:
        """Wire ``terminal`` to an evaluator; writes the first prompt."""

        if evaluator is None:
            evaluator = self.build_evaluator()
        return SessionController(terminal=terminal, evaluator=evaluator, config=config)


DEFAULT_RUNTIME_SESSION_FACTORY = RuntimeSessionFactory()
