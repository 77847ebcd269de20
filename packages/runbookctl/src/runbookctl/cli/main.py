from __future__ import annotations

import argparse
from pathlib import Path

from .. import __version__
from ..checks.model import RunSummary
from ..core.context import RunContext
from ..core.git import GitClient, SubprocessGit
from ..core.logging import log_event
from ..engine.pwsh import PowerShellEngine, PwshEngine
from ..errors import ScriptError
from ..exit_codes import ERR_INTERNAL
from ..reporting.payload import write_report
from ..reporting.sink import ReportSink
from ..runner import CHANGE_VALIDATION, PERMISSIONS_AUDIT, audit_permissions, validate_changes


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="runbookctl", description="Runbook governance checks for CI.")
    p.add_argument("--version", action="version", version=f"runbookctl {__version__}")
    p.add_argument("--workspace", help="workspace root (defaults to the current directory)")
    p.add_argument("--config", help="config file path (defaults to <workspace>/.runbookctl.yml when present)")
    p.add_argument("--run-id", help="run identifier for diagnostics and reports")
    p.add_argument("--report-file", help="write a JSON report to this path")
    p.add_argument("--log-json", action="store_true", help="emit diagnostics as JSON lines on stderr")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="emit diagnostics on stderr")
    vg.add_argument("--quiet", action="store_true", help="only report failing runbooks and the summary")
    sub = p.add_subparsers(dest="cmd", required=True)

    audit_p = sub.add_parser("audit-permissions", help="check every runbook under the given scopes for a permissions JSON")
    audit_p.add_argument("scopes", nargs="+", metavar="SCOPE", help="scope directory name under the workspace")

    changes_p = sub.add_parser("validate-changes", help="validate runbooks added or modified between two revisions")
    changes_p.add_argument("--base-ref", required=True, help="base revision")
    changes_p.add_argument("--head-ref", required=True, help="head revision")
    return p


def build_engine(ctx: RunContext) -> PowerShellEngine:
    return PwshEngine.from_context(ctx)


def build_git(ctx: RunContext) -> GitClient:
    return SubprocessGit(ctx.workspace_root, ctx=ctx)


def _title_for(cmd: str) -> str:
    return PERMISSIONS_AUDIT.title if cmd == "audit-permissions" else CHANGE_VALIDATION.title


def _run(ctx: RunContext, ns: argparse.Namespace, sink: ReportSink) -> RunSummary:
    if ns.cmd == "audit-permissions":
        return audit_permissions(ctx, ns.scopes, sink)
    return validate_changes(ctx, ns.base_ref, ns.head_ref, build_engine(ctx), build_git(ctx), sink)


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(argv)
    sink = ReportSink.for_ci(quiet=ns.quiet)
    title = _title_for(ns.cmd)
    try:
        ctx = RunContext.from_args(
            ns.run_id,
            ns.workspace,
            config_path=ns.config,
            verbose=ns.verbose,
            quiet=ns.quiet,
            log_json=ns.log_json,
        )
    except ScriptError as exc:
        sink.fatal(title, str(exc))
        return exc.code
    try:
        log_event(ctx, "info", "cli", "start", cmd=ns.cmd, workspace=str(ctx.workspace_root))
        summary = _run(ctx, ns, sink)
        if ns.report_file:
            out = write_report(ctx, summary, Path(ns.report_file))
            log_event(ctx, "info", "cli", "report-written", path=str(out))
        log_event(ctx, "info", "cli", "done", cmd=ns.cmd, status=summary.status, code=summary.exit_code)
        return summary.exit_code
    except ScriptError as exc:
        log_event(ctx, "error", "cli", "fatal", kind=exc.kind, code=exc.code)
        sink.fatal(title, str(exc))
        return exc.code
    except Exception as exc:  # pragma: no cover
        sink.fatal(title, f"internal error: {type(exc).__name__}: {exc}")
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
