from __future__ import annotations

import io
import os
import subprocess
import sys
from pathlib import Path

from runbookctl.checks.model import AnalysisFinding, Runbook
from runbookctl.core.config import RunbookConfig
from runbookctl.core.context import RunContext
from runbookctl.engine.pwsh import ParsedScript, ScriptParseError
from runbookctl.errors import EngineError, GitError
from runbookctl.exit_codes import ERR_DISCOVERY, ERR_VALIDATION
from runbookctl.reporting.sink import ReportSink

ROOT = Path(__file__).resolve().parents[3]
GOLDENS_ROOT = Path(__file__).resolve().parent / "goldens"

GOOD_HELP = """<#
.SYNOPSIS
    Restarts a device.

.DESCRIPTION
    Restarts the target device through the management API and waits
    until it reports healthy again.

.PARAMETER DeviceName
    Name of the device to restart.

.PARAMETER TimeoutSeconds
    How long to wait for the device to come back.

.EXAMPLE
    .\\Restart-Device.ps1 -DeviceName srv01
#>
param(
    [string]$DeviceName,
    [int]$TimeoutSeconds = 300
)

Write-Output "restarting $DeviceName"
"""


def write_runbook(root: Path, rel: str, text: str = GOOD_HELP, companion: str | None = "preferred") -> Runbook:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    base = path.name[: -len(".ps1")]
    if companion == "preferred":
        (path.parent / f"{base}.permissions.json").write_text('{"permissions": []}\n', encoding="utf-8")
    elif companion == "legacy":
        (path.parent / f"{base}.permission.json").write_text('{"permissions": []}\n', encoding="utf-8")
    return Runbook.from_workspace(root, path)


def make_ctx(root: Path, config: RunbookConfig | None = None, **flags: bool) -> RunContext:
    return RunContext(
        run_id="pytest-run",
        workspace_root=root,
        config=config or RunbookConfig(),
        verbose=flags.get("verbose", False),
        quiet=flags.get("quiet", False),
        log_json=flags.get("log_json", False),
    )


def capture_sink(quiet: bool = False, step_summary: Path | None = None) -> tuple[ReportSink, io.StringIO]:
    buffer = io.StringIO()
    return ReportSink(stream=buffer, quiet=quiet, step_summary=step_summary), buffer


class FakeEngine:
    """In-memory PowerShell engine keyed by file name."""

    def __init__(
        self,
        parameters: dict[str, list[str]] | None = None,
        findings: dict[str, list[AnalysisFinding]] | None = None,
        parse_errors: dict[str, list[ScriptParseError]] | None = None,
        broken: set[str] | None = None,
    ) -> None:
        self.parameters = parameters or {}
        self.findings = findings or {}
        self.parse_errors = parse_errors or {}
        self.broken = broken or set()
        self.calls: list[tuple[str, str]] = []

    def parse(self, path: Path) -> ParsedScript:
        self.calls.append(("parse", path.name))
        if path.name in self.broken:
            raise EngineError("pwsh exited with code 1: boom", ERR_VALIDATION, kind="engine_error")
        return ParsedScript(
            parameters=tuple(self.parameters.get(path.name, ["DeviceName", "TimeoutSeconds"])),
            errors=tuple(self.parse_errors.get(path.name, [])),
        )

    def analyze(self, path: Path) -> list[AnalysisFinding]:
        self.calls.append(("analyze", path.name))
        if path.name in self.broken:
            raise EngineError("PSScriptAnalyzer exited with code 1: module not found", ERR_VALIDATION, kind="engine_error")
        return list(self.findings.get(path.name, []))


class FakeGit:
    def __init__(
        self,
        parents: dict[str, list[str]] | None = None,
        changed: dict[tuple[str, str], list[str]] | None = None,
        resolved: dict[str, str] | None = None,
    ) -> None:
        self.parents = parents or {}
        self.changed = changed or {}
        self.resolved = resolved or {}
        self.diffs: list[tuple[str, str]] = []

    def commit_parents(self, rev: str) -> list[str]:
        if rev not in self.parents:
            raise GitError(f"unable to resolve revision `{rev}`", ERR_DISCOVERY, kind="git_error")
        return list(self.parents[rev])

    def resolve(self, rev: str) -> str:
        if rev not in self.resolved:
            raise GitError(f"unable to resolve revision `{rev}`", ERR_DISCOVERY, kind="git_error")
        return self.resolved[rev]

    def changed_files(self, from_rev: str, to_rev: str) -> list[str]:
        self.diffs.append((from_rev, to_rev))
        return list(self.changed.get((from_rev, to_rev), []))


def run_runbookctl(*args: str, cwd: Path) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "packages/runbookctl/src")
    env["RUN_ID"] = "pytest-run"
    env.pop("GITHUB_STEP_SUMMARY", None)
    return subprocess.run(
        [sys.executable, "-m", "runbookctl", *args],
        cwd=cwd,
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )


def golden_text(name: str) -> str:
    return (GOLDENS_ROOT / name).read_text(encoding="utf-8").strip()
