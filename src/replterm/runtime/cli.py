"""Interactive command-line shell for the runtime session."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import IO, Sequence, Tuple

from ..session_config import OverlapPolicy, SessionConfigError
from ..terminal import StreamTerminal
from .console import drive_session
from .session_factory import DEFAULT_RUNTIME_SESSION_FACTORY, RuntimeSessionFactory
from .transports import run_listen

__all__ = ["configure_logging", "main", "parse_args", "run_session"]

logger = logging.getLogger(__name__)


def _parse_host_port(value: str) -> Tuple[str, int]:
    try:
        host, port_text = value.rsplit(":", 1)
        port = int(port_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected HOST:PORT") from exc
    return host, port


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Return parsed arguments for the runtime CLI."""

    parser = argparse.ArgumentParser(prog="replterm", description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML file with a [session] table",
    )
    parser.add_argument(
        "--listen",
        type=_parse_host_port,
        default=None,
        help="Listen on HOST:PORT and serve one session per TCP connection",
    )
    parser.add_argument(
        "--overlap-policy",
        choices=[policy.value for policy in OverlapPolicy],
        default=None,
        help="Queue or reject keys typed while a submission is pending",
    )
    parser.add_argument(
        "--deferred",
        action="store_true",
        help="Run TCP submissions on a later event-loop turn",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging threshold for diagnostics written to stderr",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_session(
    args: argparse.Namespace,
    *,
    factory: RuntimeSessionFactory | None = None,
    input_stream: IO[str] = sys.stdin,
    output_stream: IO[str] = sys.stdout,
) -> int:
    """Drive a local session on the console streams; returns submissions."""

    runtime_factory = factory or DEFAULT_RUNTIME_SESSION_FACTORY
    config = runtime_factory.build_config(args)
    controller = runtime_factory.create_controller(
        StreamTerminal(output_stream), config=config
    )
    return drive_session(controller, input_stream=input_stream)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the runtime CLI."""

    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        if args.listen is not None:
            host, port = args.listen
            config = DEFAULT_RUNTIME_SESSION_FACTORY.build_config(args)
            logger.warning("serving Python evaluation to TCP clients on %s:%d", host, port)
            asyncio.run(run_listen(config, host, port, deferred=args.deferred))
            return 0
        run_session(args)
    except SessionConfigError as exc:
        print(f"replterm: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:  # pragma: no cover - user interrupt
        return 130
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    raise SystemExit(main())
