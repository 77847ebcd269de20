"""Comment-based help header parsing.

A runbook must open with a `<# ... #>` block (leading blank lines and a byte-order mark
are tolerated; `read_runbook_text` decodes UTF-16 runbooks). Inside the block, lines of the form
`.KEYWORD [argument]` start a section and every following line up to the next
keyword belongs to that section. Section bodies are kept as line lists and
flattened with `flatten_help_text` so plain and multi-line values are handled
the same way.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass, field
from pathlib import Path

from ..core.result import Err, Ok, Result
from .model import HelpHeader, HelpText, ValidationFailure, flatten_help_text

CHECK_ID = "help"

OPEN_DELIMITER = "<#"
CLOSE_DELIMITER = "#>"
BOM = "\ufeff"

_KEYWORD_LINE = re.compile(r"^\s*\.(?P<keyword>[A-Za-z]+)(?:[ \t]+(?P<argument>\S.*?))?\s*$")

KNOWN_KEYWORDS = frozenset(
    {
        "SYNOPSIS",
        "DESCRIPTION",
        "PARAMETER",
        "EXAMPLE",
        "INPUTS",
        "OUTPUTS",
        "NOTES",
        "LINK",
        "COMPONENT",
        "ROLE",
        "FUNCTIONALITY",
        "FORWARDHELPTARGETNAME",
        "FORWARDHELPCATEGORY",
        "REMOTEHELPRUNSPACE",
        "EXTERNALHELP",
    }
)
REPEATABLE_KEYWORDS = frozenset({"EXAMPLE", "LINK"})
_SNIPPET_LIMIT = 60


@dataclass
class _Section:
    keyword: str
    argument: str
    line: int
    lines: list[str] = field(default_factory=list)


def _fail(message: str) -> Err[ValidationFailure]:
    return Err(ValidationFailure(CHECK_ID, message))


def _unparsable(detail: str) -> Err[ValidationFailure]:
    return _fail(f"Comment-based help header could not be parsed: {detail}.")


def read_runbook_text(path: Path) -> str:
    """Decode a runbook the way PowerShell does: UTF-16 when a UTF-16 BOM is present, UTF-8 otherwise."""
    raw = path.read_bytes()
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16")
    return raw.decode("utf-8-sig")


def _snippet(text: str) -> str:
    first = text.splitlines()[0].strip() if text else ""
    return first if len(first) <= _SNIPPET_LIMIT else first[:_SNIPPET_LIMIT] + "..."


def extract_help_block(raw: str) -> Result[tuple[str, int], ValidationFailure]:
    """Return the text between the help delimiters and the line it starts on."""
    text = raw[len(BOM):] if raw.startswith(BOM) else raw
    content = text.lstrip()
    if not content:
        return _fail("Runbook file is empty; expected a comment-based help header ('<# .SYNOPSIS ... #>').")
    if not content.startswith(OPEN_DELIMITER):
        return _fail(
            "Missing comment-based help header: the first content must be a '<# ... #>' block "
            f"containing .SYNOPSIS and .DESCRIPTION (found '{_snippet(content)}')."
        )
    offset = len(text) - len(content)
    start_line = text.count("\n", 0, offset) + 1
    end = content.find(CLOSE_DELIMITER, len(OPEN_DELIMITER))
    if end < 0:
        return _fail(f"Comment-based help header opened on line {start_line} is not closed: missing '#>'.")
    return Ok((content[len(OPEN_DELIMITER):end], start_line))


def _split_sections(body: str, start_line: int) -> Result[list[_Section], ValidationFailure]:
    sections: list[_Section] = []
    current: _Section | None = None
    for index, line in enumerate(body.split("\n")):
        line_no = start_line + index
        match = _KEYWORD_LINE.match(line)
        if match is None:
            if current is None:
                if line.strip():
                    return _unparsable(f"text before the first help keyword on line {line_no}: '{_snippet(line)}'")
                continue
            current.lines.append(line.rstrip("\r"))
            continue
        keyword = match.group("keyword").upper()
        argument = (match.group("argument") or "").strip()
        if keyword not in KNOWN_KEYWORDS:
            return _unparsable(f"unknown help keyword '.{match.group('keyword')}' on line {line_no}")
        current = _Section(keyword=keyword, argument=argument, line=line_no)
        sections.append(current)
    return Ok(sections)


def _build_header(sections: list[_Section]) -> Result[HelpHeader, ValidationFailure]:
    single: dict[str, HelpText] = {}
    parameters: dict[str, HelpText] = {}
    seen_params: dict[str, int] = {}
    for section in sections:
        if section.keyword == "PARAMETER":
            if not section.argument:
                return _unparsable(f".PARAMETER on line {section.line} has no parameter name")
            key = section.argument.casefold()
            if key in seen_params:
                return _unparsable(
                    f".PARAMETER {section.argument} on line {section.line} duplicates the section on line {seen_params[key]}"
                )
            seen_params[key] = section.line
            parameters[section.argument] = section.lines
            continue
        if section.keyword in REPEATABLE_KEYWORDS:
            continue
        if section.keyword in single:
            return _unparsable(f".{section.keyword} on line {section.line} appears more than once")
        body = list(section.lines)
        if section.argument:
            body.insert(0, section.argument)
        single[section.keyword] = body
    return Ok(
        HelpHeader(
            synopsis=flatten_help_text(single.get("SYNOPSIS")),
            description=flatten_help_text(single.get("DESCRIPTION")),
            parameters={name: flatten_help_text(text) for name, text in parameters.items()},
        )
    )


def parse_help_header(raw: str) -> Result[HelpHeader, ValidationFailure]:
    block = extract_help_block(raw)
    if isinstance(block, Err):
        return block
    body, start_line = block.value
    sections = _split_sections(body, start_line)
    if isinstance(sections, Err):
        return sections
    return _build_header(sections.value)
