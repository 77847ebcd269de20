from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.result import Err, Ok, Result
from ..errors import EngineError
from .model import DeclaredParameterSet, Runbook, ValidationFailure

if TYPE_CHECKING:
    from ..engine.pwsh import PowerShellEngine

CHECK_ID = "parameters"


def extract_declared_parameters(engine: PowerShellEngine, runbook: Runbook) -> Result[DeclaredParameterSet, ValidationFailure]:
    """Declared `param()` names of the script; a script without a param block declares none."""
    try:
        parsed = engine.parse(runbook.path)
    except EngineError as exc:
        return Err(ValidationFailure(CHECK_ID, f"PowerShell parser could not read '{runbook.rel_path}': {exc}"))
    if parsed.errors:
        details = "\n".join(f"  {error.render()}" for error in parsed.errors)
        return Err(ValidationFailure(CHECK_ID, f"PowerShell parse error(s) in '{runbook.rel_path}':\n{details}"))
    return Ok(DeclaredParameterSet.of(parsed.parameters))
