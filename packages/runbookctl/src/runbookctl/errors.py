from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_INTERNAL


@dataclass
class ScriptError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"

    def __str__(self) -> str:
        return self.message


class GitError(ScriptError):
    """A git invocation failed; fatal when raised during discovery."""


class EngineError(ScriptError):
    """The PowerShell engine could not be run or returned unusable output."""
