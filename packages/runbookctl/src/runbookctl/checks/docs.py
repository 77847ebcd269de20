from __future__ import annotations

from ..core.result import Err, Ok, Result
from .model import DeclaredParameterSet, HelpHeader, ValidationFailure, normalize_text

CHECK_ID = "docs"
QUOTE_LIMIT = 240


def _fail(message: str) -> Err[ValidationFailure]:
    return Err(ValidationFailure(CHECK_ID, message))


def _quote(value: str) -> str:
    text = " ".join(value.split())
    return text if len(text) <= QUOTE_LIMIT else text[:QUOTE_LIMIT] + "..."


def check_help_completeness(
    header: HelpHeader,
    declared: DeclaredParameterSet,
    rel_path: str,
) -> Result[None, ValidationFailure]:
    if not header.synopsis.strip():
        return _fail(f"Missing or empty .SYNOPSIS in the comment-based help of '{rel_path}'.")
    if not header.description.strip():
        return _fail(f"Missing or empty .DESCRIPTION in the comment-based help of '{rel_path}'.")
    if normalize_text(header.synopsis) == normalize_text(header.description):
        return _fail(
            f".SYNOPSIS and .DESCRIPTION are identical in '{rel_path}'; the description must add detail. "
            f"Synopsis: '{_quote(header.synopsis)}'. Description: '{_quote(header.description)}'."
        )
    for name in declared:
        text = header.parameter_description(name)
        if text is None:
            return _fail(f"Missing .PARAMETER section for parameter '{name}' in '{rel_path}'.")
        if not text.strip():
            return _fail(f"Empty .PARAMETER description for parameter '{name}' in '{rel_path}'.")
    return Ok(None)
