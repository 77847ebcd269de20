"""Per-runbook checks and the shared result model."""
from .model import (
    AnalysisFinding,
    CompanionCandidate,
    DeclaredParameterSet,
    FindingSeverity,
    HelpHeader,
    Outcome,
    Runbook,
    RunSummary,
    ValidationFailure,
    flatten_help_text,
)

__all__ = [
    "AnalysisFinding",
    "CompanionCandidate",
    "DeclaredParameterSet",
    "FindingSeverity",
    "HelpHeader",
    "Outcome",
    "RunSummary",
    "Runbook",
    "ValidationFailure",
    "flatten_help_text",
]
