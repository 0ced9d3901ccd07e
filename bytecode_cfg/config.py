"""
bytecode_cfg/config.py
======================

Analysis options.

Options come from three places, later ones winning:

  1. defaults of :class:`AnalysisOptions`
  2. environment variables (:meth:`AnalysisOptions.from_env`)
  3. command-line flags (:meth:`AnalysisOptions.with_overrides`)

Environment variables
---------------------
    BYTECODE_CFG_ENTRY_METHOD      name of the method to analyse
    BYTECODE_CFG_ENTRY_DESCRIPTOR  its descriptor (unset = any)
    BYTECODE_CFG_REACHABLE_ONLY    1/true/yes/on to restrict the solver
    BYTECODE_CFG_MAX_PASSES        integer cap on dominator passes
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

ENV_PREFIX = "BYTECODE_CFG_"

DEFAULT_ENTRY_METHOD = "main"
JAVA_MAIN_DESCRIPTOR = "([Ljava/lang/String;)V"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name}: expected a boolean, got {raw!r}")


def _env_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name}: expected an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name}: must be positive, got {value}")
    return value


@dataclass(frozen=True)
class AnalysisOptions:
    """Knobs for one analysis run.

    Attributes:
        entry_method: Name of the method whose body is analysed.
        entry_descriptor: Required method descriptor, or ``None`` for any.
        restrict_to_reachable: Run the dominator solver over reachable
            blocks only.
        max_passes: Cap on dominator passes (``None`` = automatic).
    """

    entry_method: str = DEFAULT_ENTRY_METHOD
    entry_descriptor: Optional[str] = None
    restrict_to_reachable: bool = False
    max_passes: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnalysisOptions":
        env = os.environ if environ is None else environ
        return cls(
            entry_method=env.get(ENV_PREFIX + "ENTRY_METHOD") or DEFAULT_ENTRY_METHOD,
            entry_descriptor=env.get(ENV_PREFIX + "ENTRY_DESCRIPTOR") or None,
            restrict_to_reachable=_env_bool(
                env, ENV_PREFIX + "REACHABLE_ONLY", False),
            max_passes=_env_int(env, ENV_PREFIX + "MAX_PASSES"),
        )

    def with_overrides(self, **overrides: Any) -> "AnalysisOptions":
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)
