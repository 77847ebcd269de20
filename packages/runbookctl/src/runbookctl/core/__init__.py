"""Runbookctl core package."""
from .context import RunContext
from .logging import log_event
from .paths import find_workspace_root
from .result import Err, Ok, Result, error_of

__all__ = [
    "Err",
    "Ok",
    "Result",
    "RunContext",
    "find_workspace_root",
    "error_of",
    "log_event",
]
