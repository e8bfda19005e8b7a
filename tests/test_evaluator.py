"""Unit tests covering the evaluator helpers."""

from __future__ import annotations

import asyncio

from replterm import BufferedTerminal, DeferredEvaluator, LineSplitter, SessionController


def test_line_splitter_emits_completed_lines() -> None:
    lines: list[str] = []
    splitter = LineSplitter(lines.append)

    assert splitter.write("alpha\nbe") == len("alpha\nbe")
    splitter.write("ta\n\ngam")

    assert lines == ["alpha", "beta", ""]

    splitter.flush_partial()
    splitter.flush_partial()

    assert lines == ["alpha", "beta", "", "gam"]


def test_line_splitter_supports_print() -> None:
    lines: list[str] = []
    splitter = LineSplitter(lines.append)

    print("one", "two", file=splitter)
    print(3, end="", file=splitter)

    assert lines == ["one two"]
    splitter.flush_partial()
    assert lines == ["one two", "3"]


class _EchoEvaluator:
    def __init__(self) -> None:
        # Why: resolve synchronously so only the deferral adds a loop turn.
        self.listener = None
        self.submissions: list[tuple[str, bool]] = []

    def subscribe(self, listener) -> None:
        self.listener = listener

    def submit(self, text: str, hint: bool) -> None:
        self.submissions.append((text, hint))
        self.listener.on_output_line(text.upper())
        self.listener.on_session_reset()


def test_deferred_evaluator_resolves_on_later_loop_turn() -> None:
    async def scenario() -> tuple[SessionController, BufferedTerminal, list[bool]]:
        terminal = BufferedTerminal()
        inner = _EchoEvaluator()
        controller = SessionController(terminal=terminal, evaluator=DeferredEvaluator(inner))
        observed: list[bool] = []

        controller.feed("ab\rcd\r")
        observed.append(controller.submission_in_flight)
        observed.append(bool(inner.submissions))

        for _ in range(5):
            await asyncio.sleep(0)
        observed.append(controller.submission_in_flight)
        return controller, terminal, observed

    controller, terminal, observed = asyncio.run(scenario())

    assert observed == [True, False, False]
    assert terminal.transcript == "> ab\nAB\n> cd\nCD\n> "
    assert controller.submissions == 2


class _ExitingEvaluator(_EchoEvaluator):
    def submit(self, text: str, hint: bool) -> None:
        # Why: mimic evaluated code calling exit() from a loop callback.
        self.submissions.append((text, hint))
        raise SystemExit(0)


def test_deferred_evaluator_routes_exit_to_callback() -> None:
    exits: list[str] = []

    async def scenario() -> SessionController:
        inner = _ExitingEvaluator()
        deferred = DeferredEvaluator(inner, on_exit=lambda: exits.append("exit"))
        controller = SessionController(terminal=BufferedTerminal(), evaluator=deferred)
        controller.feed("quit()\r")
        for _ in range(3):
            await asyncio.sleep(0)
        return controller

    controller = asyncio.run(scenario())

    assert exits == ["exit"]
    assert controller.submissions == 1
