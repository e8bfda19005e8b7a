"""Session configuration loaded from TOML."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import tomllib

__all__ = [
    "OverlapPolicy",
    "SessionConfig",
    "SessionConfigError",
    "load_session_config",
]


class SessionConfigError(ValueError):
    """Raised when a session configuration file fails validation."""


class OverlapPolicy(Enum):
    """How keys are handled while a submission awaits its resolution."""

    QUEUE = "queue"
    REJECT = "reject"


@dataclass(frozen=True)
class SessionConfig:
    """Prompt strings and protocol knobs for a terminal session."""

    primary_prompt: str = "> "
    continuation_prompt: str = ": "
    error_prefix: str = "error: "
    line_separator: str = "\n"
    overlap_policy: OverlapPolicy = OverlapPolicy.QUEUE

    def with_overrides(self, **overrides: Any) -> "SessionConfig":
        """Return a copy with non-``None`` ``overrides`` applied."""

        values = {key: value for key, value in overrides.items() if value is not None}
        if "overlap_policy" in values:
            values["overlap_policy"] = _coerce_policy(values["overlap_policy"])
        return replace(self, **values)


_STRING_FIELDS = ("primary_prompt", "continuation_prompt", "error_prefix", "line_separator")
_NON_EMPTY_FIELDS = ("primary_prompt", "continuation_prompt", "line_separator")


def load_session_config(config_path: Path) -> SessionConfig:
    """Parse and validate the session configuration at ``config_path``."""

    with config_path.open("rb") as stream:
        try:
            raw_data = tomllib.load(stream)
        except tomllib.TOMLDecodeError as exc:
            raise SessionConfigError(f"{config_path}: {exc}") from exc
    return parse_session_config(raw_data)


def parse_session_config(data: Mapping[str, Any]) -> SessionConfig:
    """Build a :class:`SessionConfig` from already-decoded TOML data."""

    section = data.get("session")
    if section is None:
        raise SessionConfigError("session configuration requires a [session] table")
    if not isinstance(section, Mapping):
        raise SessionConfigError("[session] section must be a mapping")

    known = {item.name for item in fields(SessionConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise SessionConfigError(f"unknown [session] keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for name in _STRING_FIELDS:
        if name not in section:
            continue
        value = section[name]
        if not isinstance(value, str):
            raise SessionConfigError(f"{name} must be a string, received {type(value)!r}")
        if name in _NON_EMPTY_FIELDS and not value:
            raise SessionConfigError(f"{name} must not be empty")
        values[name] = value
    if "overlap_policy" in section:
        values["overlap_policy"] = _coerce_policy(section["overlap_policy"])
    return SessionConfig(**values)


def _coerce_policy(value: Any) -> OverlapPolicy:
    if isinstance(value, OverlapPolicy):
        return value
    try:
        return OverlapPolicy(str(value).lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in OverlapPolicy)
        raise SessionConfigError(
            f"overlap_policy must be one of {choices}, received {value!r}"
        ) from exc
