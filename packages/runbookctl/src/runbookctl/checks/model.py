from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence, Union

from ..exit_codes import ERR_VALIDATION, OK

RUNBOOK_SUFFIX = ".ps1"
PREFERRED_COMPANION_SUFFIX = ".permissions.json"
LEGACY_COMPANION_SUFFIX = ".permission.json"

HelpText = Union[str, Sequence[str]]


def flatten_help_text(value: HelpText | None) -> str:
    """Collapse plain or multi-line help text into one string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    lines = [str(line).strip() for line in value]
    return " ".join(line for line in lines if line)


def normalize_text(value: str) -> str:
    return " ".join(value.split()).casefold()


@dataclass(frozen=True, order=True)
class Runbook:
    path: Path
    rel_path: str

    @classmethod
    def from_workspace(cls, workspace_root: Path, path: Path) -> "Runbook":
        return cls(path=path, rel_path=path.relative_to(workspace_root).as_posix())

    @property
    def base_name(self) -> str:
        return self.path.name[: -len(RUNBOOK_SUFFIX)]


@dataclass(frozen=True)
class CompanionCandidate:
    preferred: Path
    legacy: Path

    @classmethod
    def for_runbook(cls, runbook: Runbook) -> "CompanionCandidate":
        parent = runbook.path.parent
        return cls(
            preferred=parent / f"{runbook.base_name}{PREFERRED_COMPANION_SUFFIX}",
            legacy=parent / f"{runbook.base_name}{LEGACY_COMPANION_SUFFIX}",
        )


@dataclass(frozen=True)
class HelpHeader:
    synopsis: str
    description: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def parameter_description(self, name: str) -> str | None:
        wanted = name.casefold()
        for documented, text in self.parameters.items():
            if documented.casefold() == wanted:
                return text
        return None


@dataclass(frozen=True)
class DeclaredParameterSet:
    names: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> "DeclaredParameterSet":
        seen: set[str] = set()
        ordered: list[str] = []
        for name in names:
            key = name.casefold()
            if key in seen:
                continue
            seen.add(key)
            ordered.append(name)
        return cls(tuple(ordered))

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)


class FindingSeverity(str, Enum):
    INFORMATION = "Information"
    WARNING = "Warning"
    ERROR = "Error"
    PARSE_ERROR = "ParseError"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    @property
    def blocking(self) -> bool:
        return self.rank >= FindingSeverity.ERROR.rank

    @classmethod
    def parse(cls, raw: object) -> "FindingSeverity":
        # PSScriptAnalyzer serializes DiagnosticSeverity either by name or by enum value.
        if isinstance(raw, bool):
            raise ValueError(f"unknown finding severity `{raw}`")
        if isinstance(raw, int):
            if 0 <= raw < len(_SEVERITY_ORDER):
                return _SEVERITY_ORDER[raw]
            raise ValueError(f"unknown finding severity `{raw}`")
        text = str(raw).strip()
        if text.isdigit():
            return cls.parse(int(text))
        for member in cls:
            if member.value.casefold() == text.casefold():
                return member
        raise ValueError(f"unknown finding severity `{raw}`")


_SEVERITY_ORDER: tuple[FindingSeverity, ...] = (
    FindingSeverity.INFORMATION,
    FindingSeverity.WARNING,
    FindingSeverity.ERROR,
    FindingSeverity.PARSE_ERROR,
)


@dataclass(frozen=True)
class AnalysisFinding:
    severity: FindingSeverity
    rule: str
    message: str
    line: int | None = None

    def render(self) -> str:
        where = f" (line {self.line})" if self.line else ""
        return f"[{self.severity.value}] {self.rule}{where}: {self.message}"


@dataclass(frozen=True)
class ValidationFailure:
    check: str
    message: str


@dataclass(frozen=True)
class Outcome:
    runbook: Runbook
    passed_checks: tuple[str, ...] = ()
    failures: tuple[ValidationFailure, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def status(self) -> str:
        return "pass" if self.passed else "fail"


@dataclass(frozen=True)
class RunSummary:
    profile: str
    outcomes: tuple[Outcome, ...] = ()
    skipped: bool = False

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return "pass" if self.failed_count == 0 else "fail"

    @property
    def exit_code(self) -> int:
        return OK if self.failed_count == 0 else ERR_VALIDATION
