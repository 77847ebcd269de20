from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from ..checks.model import AnalysisFinding, FindingSeverity
from ..core.env import environ_with
from ..core.process import run_command
from ..errors import EngineError
from ..exit_codes import ERR_VALIDATION

if TYPE_CHECKING:
    from ..core.context import RunContext

TARGET_ENV = "RUNBOOKCTL_TARGET"
SETTINGS_ENV = "RUNBOOKCTL_ANALYZER_SETTINGS"

PARSE_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$tokens = $null
$parseErrors = $null
$ast = [System.Management.Automation.Language.Parser]::ParseFile($env:RUNBOOKCTL_TARGET, [ref]$tokens, [ref]$parseErrors)
$parameters = @()
if ($ast.ParamBlock) {
    $parameters = @($ast.ParamBlock.Parameters | ForEach-Object { $_.Name.VariablePath.UserPath })
}
$errors = @($parseErrors | ForEach-Object {
    [pscustomobject]@{ line = $_.Extent.StartLineNumber; message = $_.Message }
})
[pscustomobject]@{ parameters = $parameters; errors = $errors } | ConvertTo-Json -Depth 4 -Compress
"""

ANALYZE_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
Import-Module PSScriptAnalyzer
$arguments = @{ Path = $env:RUNBOOKCTL_TARGET }
if ($env:RUNBOOKCTL_ANALYZER_SETTINGS) { $arguments.Settings = $env:RUNBOOKCTL_ANALYZER_SETTINGS }
$findings = @(Invoke-ScriptAnalyzer @arguments | ForEach-Object {
    [pscustomobject]@{ severity = $_.Severity.ToString(); rule = $_.RuleName; line = $_.Line; message = $_.Message }
})
ConvertTo-Json -InputObject $findings -Depth 4 -Compress
"""


@dataclass(frozen=True)
class ScriptParseError:
    message: str
    line: int | None = None

    def render(self) -> str:
        return f"line {self.line}: {self.message}" if self.line else self.message


@dataclass(frozen=True)
class ParsedScript:
    parameters: tuple[str, ...] = ()
    errors: tuple[ScriptParseError, ...] = ()


class PowerShellEngine(Protocol):
    def parse(self, path: Path) -> ParsedScript: ...

    def analyze(self, path: Path) -> list[AnalysisFinding]: ...


def _as_list(payload: Any) -> list[Any]:
    # ConvertTo-Json unwraps single-element arrays unless told otherwise.
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    return [payload]


def _optional_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_parse_payload(stdout: str) -> ParsedScript:
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise EngineError(f"unparsable parser output: {exc}", ERR_VALIDATION, kind="engine_error") from exc
    if not isinstance(payload, dict):
        raise EngineError("unparsable parser output: expected a JSON object", ERR_VALIDATION, kind="engine_error")
    parameters = tuple(str(name) for name in _as_list(payload.get("parameters")) if str(name).strip())
    errors = tuple(
        ScriptParseError(message=str(row.get("message", "")).strip(), line=_optional_int(row.get("line")))
        for row in _as_list(payload.get("errors"))
        if isinstance(row, dict)
    )
    return ParsedScript(parameters=parameters, errors=errors)


def parse_analyzer_payload(stdout: str) -> list[AnalysisFinding]:
    text = stdout.strip()
    if not text:
        return []
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EngineError(f"unparsable PSScriptAnalyzer output: {exc}", ERR_VALIDATION, kind="engine_error") from exc
    findings: list[AnalysisFinding] = []
    for row in _as_list(payload):
        if not isinstance(row, dict):
            raise EngineError("unparsable PSScriptAnalyzer output: expected finding objects", ERR_VALIDATION, kind="engine_error")
        try:
            severity = FindingSeverity.parse(row.get("severity"))
        except ValueError as exc:
            raise EngineError(f"unparsable PSScriptAnalyzer output: {exc}", ERR_VALIDATION, kind="engine_error") from exc
        findings.append(
            AnalysisFinding(
                severity=severity,
                rule=str(row.get("rule") or "<unknown rule>"),
                message=" ".join(str(row.get("message") or "").split()),
                line=_optional_int(row.get("line")),
            )
        )
    return findings


class PwshEngine:
    """PowerShell parser and PSScriptAnalyzer, one `pwsh` process per call."""

    def __init__(
        self,
        workspace_root: Path,
        executable: str = "pwsh",
        analyzer_settings: Path | None = None,
        ctx: RunContext | None = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.executable = executable
        self.analyzer_settings = analyzer_settings
        self.ctx = ctx

    @classmethod
    def from_context(cls, ctx: RunContext) -> "PwshEngine":
        return cls(
            workspace_root=ctx.workspace_root,
            executable=ctx.config.pwsh,
            analyzer_settings=ctx.config.analyzer_settings,
            ctx=ctx,
        )

    def _invoke(self, script: str, path: Path, purpose: str) -> str:
        env = {TARGET_ENV: str(path)}
        if self.analyzer_settings is not None:
            env[SETTINGS_ENV] = str(self.analyzer_settings)
        cmd = [self.executable, "-NoLogo", "-NoProfile", "-NonInteractive", "-Command", script]
        try:
            res = run_command(cmd, self.workspace_root, env=environ_with(**env), ctx=self.ctx)
        except OSError as exc:
            raise EngineError(f"unable to start `{self.executable}` for {purpose}: {exc}", ERR_VALIDATION, kind="engine_error") from exc
        if res.code != 0:
            detail = res.stderr.strip() or res.stdout.strip() or "no output"
            raise EngineError(f"{purpose} exited with code {res.code}: {detail}", ERR_VALIDATION, kind="engine_error")
        return res.stdout

    def parse(self, path: Path) -> ParsedScript:
        return parse_parse_payload(self._invoke(PARSE_SCRIPT, path, "PowerShell parser"))

    def analyze(self, path: Path) -> list[AnalysisFinding]:
        return parse_analyzer_payload(self._invoke(ANALYZE_SCRIPT, path, "PSScriptAnalyzer"))
