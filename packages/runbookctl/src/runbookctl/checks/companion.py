from __future__ import annotations

from pathlib import Path

from ..core.result import Err, Ok, Result
from .model import CompanionCandidate, Runbook, ValidationFailure

CHECK_ID = "permissions"


def _rel(runbook: Runbook, path: Path) -> str:
    rel_dir = runbook.rel_path.rpartition("/")[0]
    return f"{rel_dir}/{path.name}" if rel_dir else path.name


def check_companion_file(runbook: Runbook) -> Result[None, ValidationFailure]:
    candidate = CompanionCandidate.for_runbook(runbook)
    if candidate.preferred.is_file() or candidate.legacy.is_file():
        return Ok(None)
    return Err(
        ValidationFailure(
            CHECK_ID,
            f"Missing permissions JSON for '{runbook.rel_path}'. "
            f"Expected '{_rel(runbook, candidate.preferred)}' (preferred) "
            f"or '{_rel(runbook, candidate.legacy)}'.",
        )
    )
