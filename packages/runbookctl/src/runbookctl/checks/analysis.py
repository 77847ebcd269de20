from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.result import Err, Ok, Result
from ..errors import EngineError
from .model import AnalysisFinding, Runbook, ValidationFailure

if TYPE_CHECKING:
    from ..engine.pwsh import PowerShellEngine

CHECK_ID = "analysis"


def blocking_findings(findings: list[AnalysisFinding]) -> list[AnalysisFinding]:
    return [finding for finding in findings if finding.severity.blocking]


def check_static_analysis(engine: PowerShellEngine, runbook: Runbook) -> Result[list[AnalysisFinding], ValidationFailure]:
    """Run PSScriptAnalyzer with every severity and fail on Error/ParseError findings.

    The engine is never asked to filter by severity: parse-level problems are
    reported under their own severity and would be lost by an Error-only query.
    """
    try:
        findings = engine.analyze(runbook.path)
    except EngineError as exc:
        return Err(ValidationFailure(CHECK_ID, f"PSScriptAnalyzer could not analyze '{runbook.rel_path}': {exc}"))
    blocking = blocking_findings(findings)
    if not blocking:
        return Ok(findings)
    lines = "\n".join(f"  {finding.render()}" for finding in blocking)
    return Err(
        ValidationFailure(
            CHECK_ID,
            f"PSScriptAnalyzer reported {len(blocking)} blocking finding(s) in '{runbook.rel_path}':\n{lines}",
        )
    )
