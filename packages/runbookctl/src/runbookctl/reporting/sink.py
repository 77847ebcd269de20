"""Human-readable log lines, workflow annotations and the step-summary table."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from ..core.env import getenv

if TYPE_CHECKING:
    from ..checks.model import Outcome, RunSummary
    from ..runner import Profile

STEP_SUMMARY_ENV = "GITHUB_STEP_SUMMARY"


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_annotation(title: str, message: str, file: str | None = None) -> str:
    props = f"title={escape_property(title)}"
    if file:
        props = f"file={escape_property(file)},{props}"
    return f"::error {props}::{escape_data(message)}"


def _cell(value: str) -> str:
    return " ".join(value.split()).replace("|", "\\|")


class ReportSink:
    def __init__(self, stream: TextIO | None = None, quiet: bool = False, step_summary: Path | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.quiet = quiet
        self.step_summary = step_summary

    @classmethod
    def for_ci(cls, quiet: bool = False) -> "ReportSink":
        summary = getenv(STEP_SUMMARY_ENV)
        return cls(quiet=quiet, step_summary=Path(summary) if summary else None)

    def _line(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    def annotate(self, title: str, message: str, file: str | None = None) -> None:
        self._line(format_annotation(title, message, file))

    def started(self, profile: Profile, total: int) -> None:
        self._line(f"{profile.name}: checking {total} runbook(s)")

    def skipped(self, profile: Profile, message: str) -> None:
        self._line(message)
        self._append_step_summary([f"### {profile.name}: skipped", "", message, ""])

    def outcome(self, profile: Profile, outcome: Outcome) -> None:
        rel = outcome.runbook.rel_path
        if outcome.passed:
            if not self.quiet:
                self._line(f"PASS {rel}")
                self._check_lines(profile, outcome)
            return
        self._line(f"FAIL {rel}")
        self._check_lines(profile, outcome)
        for failure in outcome.failures:
            for text in failure.message.splitlines():
                self._line(f"    {text}")
            self.annotate(profile.title, failure.message, file=rel)

    def _check_lines(self, profile: Profile, outcome: Outcome) -> None:
        if len(profile.checks) < 2:
            return
        failed = {failure.check for failure in outcome.failures}
        for check in profile.checks:
            if check in outcome.passed_checks:
                state = "ok"
            elif check in failed:
                state = "fail"
            else:
                state = "skipped"
            self._line(f"  [{state}] {check}")
        for check in sorted(failed.difference(profile.checks)):
            self._line(f"  [fail] {check}")

    def finished(self, profile: Profile, summary: RunSummary) -> None:
        self._line("")
        self._line("Summary:")
        self._line(f"  {profile.total_label}: {summary.total}")
        if len(profile.checks) > 1:
            self._line(f"  Passed: {summary.passed_count}")
        self._line(f"  {profile.failed_label}: {summary.failed_count}")
        rows = [f"### {profile.name}: {summary.status}", "", "| Runbook | Status | Details |", "| --- | --- | --- |"]
        for outcome in summary.outcomes:
            detail = outcome.failures[0].message if outcome.failures else ""
            rows.append(f"| `{outcome.runbook.rel_path}` | {outcome.status} | {_cell(detail)} |")
        rows.append("")
        self._append_step_summary(rows)

    def fatal(self, title: str, message: str) -> None:
        self._line(f"ERROR: {message}")
        self.annotate(title, message)

    def _append_step_summary(self, lines: list[str]) -> None:
        if self.step_summary is None:
            return
        with self.step_summary.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
