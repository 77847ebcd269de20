"""Explicit check results.

Every per-runbook check returns `Ok` or `Err` instead of raising, so the runner
decides when a runbook's pipeline stops. `ScriptError` stays reserved for
run-level failures (config, discovery, report writing).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Ok[T] | Err[E]


def error_of(result: Result[T, E]) -> E | None:
    """The failure carried by `result`, or None when it passed."""
    return result.error if isinstance(result, Err) else None
