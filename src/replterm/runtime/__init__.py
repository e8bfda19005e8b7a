"""Runtime modules exposed by the replterm package."""
from __future__ import annotations

from typing import Any

from . import cli as _cli
from . import console as _console
from . import python_evaluator as _python_evaluator
from . import session_factory as _session_factory
from . import transports as _transports

_modules = [
    _cli,
    _console,
    _python_evaluator,
    _session_factory,
    _transports,
]

__all__: list[str] = []
_seen: set[str] = set()
for _module in _modules:
    for _name in _module.__all__:
        if _name not in _seen:
            _seen.add(_name)
            __all__.append(_name)
        globals()[_name] = getattr(_module, _name)


def __getattr__(name: str) -> Any:
    for _module in _modules:
        if hasattr(_module, name):
            return getattr(_module, name)
    raise AttributeError(name)


def __dir__() -> list[str]:
    return sorted(__all__)
