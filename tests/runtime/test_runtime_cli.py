"""Unit tests covering the command-line runtime."""

from __future__ import annotations

import argparse
import io
from pathlib import Path

import pytest

from replterm import BufferedTerminal, OverlapPolicy, SessionController
from replterm.runtime.cli import main, parse_args, run_session
from replterm.runtime.console import cbreak_input, drive_session
from replterm.runtime.python_evaluator import PythonEvaluator
from replterm.runtime.session_factory import RuntimeSessionFactory, build_session_config


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.config is None
    assert args.listen is None
    assert args.overlap_policy is None
    assert args.deferred is False
    assert args.log_level == "WARNING"


def test_parse_args_listen_and_policy() -> None:
    args = parse_args(["--listen", "127.0.0.1:2323", "--overlap-policy", "reject"])

    assert args.listen == ("127.0.0.1", 2323)
    assert args.overlap_policy == "reject"


def test_parse_args_rejects_malformed_listen_address() -> None:
    with pytest.raises(SystemExit):
        parse_args(["--listen", "localhost"])


def test_build_session_config_layers_cli_over_file(tmp_path: Path) -> None:
    config_path = tmp_path / "session.toml"
    config_path.write_text('[session]\nprimary_prompt = "$ "\noverlap_policy = "queue"\n')
    args = argparse.Namespace(config=config_path, overlap_policy="reject")

    config = build_session_config(args)

    assert config.primary_prompt == "$ "
    assert config.overlap_policy is OverlapPolicy.REJECT


# Why: verifies the console loop evaluates piped input and leaves the prompt behind at EOF.
def test_run_session_drives_piped_input() -> None:
    input_stream = io.StringIO("x = 20\nif x:\n    print(x + 1)\n\n")
    output_stream = io.StringIO()

    submissions = run_session(
        parse_args([]), input_stream=input_stream, output_stream=output_stream
    )

    assert submissions == 4
    assert output_stream.getvalue() == (
        "> x = 20\n"
        "> if x:\n"
        ":     print(x + 1)\n"
        ": \n"
        "21\n"
        "> "
    )


def test_run_session_uses_injected_factory() -> None:
    class _UpperEvaluator:
        def subscribe(self, listener) -> None:
            # Why: a trivial backend proves the factory hook replaces PythonEvaluator.
            self.listener = listener

        def submit(self, text: str, hint: bool) -> None:
            if text:
                self.listener.on_output_line(text.upper())
            self.listener.on_session_reset()

    factory = RuntimeSessionFactory(evaluator_builder=_UpperEvaluator)
    output_stream = io.StringIO()

    run_session(
        parse_args([]),
        factory=factory,
        input_stream=io.StringIO("shout\n"),
        output_stream=output_stream,
    )

    assert output_stream.getvalue() == "> shout\nSHOUT\n> "


def test_drive_session_stops_on_end_of_transmission_on_empty_line() -> None:
    terminal = BufferedTerminal()
    controller = SessionController(terminal=terminal, evaluator=PythonEvaluator())

    submissions = drive_session(controller, input_stream=io.StringIO("ab\x04\x7f\x7f\x04x = 1\n"))

    assert submissions == 0
    assert controller.line_buffer == ""
    assert terminal.transcript == "> ab" + "\b \b" * 2 + "\n"


def test_cbreak_input_leaves_non_tty_streams_alone() -> None:
    with cbreak_input(io.StringIO()) as interactive:
        assert interactive is False


def test_main_reports_config_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "broken.toml"
    config_path.write_text("[session]\noverlap_policy = 'sometimes'\n")

    assert main(["--config", str(config_path)]) == 2

    assert "overlap_policy must be one of" in capsys.readouterr().err
