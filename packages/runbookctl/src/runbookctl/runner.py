from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

from .checks.analysis import CHECK_ID as ANALYSIS_CHECK, check_static_analysis
from .checks.companion import CHECK_ID as PERMISSIONS_CHECK, check_companion_file
from .checks.docs import CHECK_ID as DOCS_CHECK, check_help_completeness
from .checks.help_header import CHECK_ID as HELP_CHECK, parse_help_header, read_runbook_text
from .checks.model import Outcome, Runbook, RunSummary, ValidationFailure
from .checks.parameters import CHECK_ID as PARAMETERS_CHECK, extract_declared_parameters
from .core.logging import log_event
from .core.result import Err, error_of
from .discovery import discover_changed_runbooks, discover_scope_runbooks

if TYPE_CHECKING:
    from .core.context import RunContext
    from .core.git import GitClient
    from .engine.pwsh import PowerShellEngine
    from .reporting.sink import ReportSink

INTERNAL_CHECK = "internal"


@dataclass(frozen=True)
class Profile:
    name: str
    title: str
    checks: tuple[str, ...]
    total_label: str
    failed_label: str


PERMISSIONS_AUDIT = Profile(
    name="permissions-audit",
    title="Permissions JSON validation failed",
    checks=(PERMISSIONS_CHECK,),
    total_label="Checked",
    failed_label="Missing permissions JSON",
)
CHANGE_VALIDATION = Profile(
    name="runbook-validation",
    title="Runbook validation failed",
    checks=(PERMISSIONS_CHECK, ANALYSIS_CHECK, HELP_CHECK, PARAMETERS_CHECK, DOCS_CHECK),
    total_label="Validated",
    failed_label="Failed",
)

Evaluator = Callable[[Runbook], Outcome]


def audit_runbook(runbook: Runbook) -> Outcome:
    failure = error_of(check_companion_file(runbook))
    if failure is not None:
        return Outcome(runbook, failures=(failure,))
    return Outcome(runbook, passed_checks=(PERMISSIONS_CHECK,))


def validate_runbook(engine: PowerShellEngine, runbook: Runbook) -> Outcome:
    """Run the change-validation pipeline, stopping at the first failing check."""
    passed: list[str] = []

    def _stop(failure: ValidationFailure) -> Outcome:
        return Outcome(runbook, passed_checks=tuple(passed), failures=(failure,))

    failure = error_of(check_companion_file(runbook))
    if failure is not None:
        return _stop(failure)
    passed.append(PERMISSIONS_CHECK)

    failure = error_of(check_static_analysis(engine, runbook))
    if failure is not None:
        return _stop(failure)
    passed.append(ANALYSIS_CHECK)

    header = parse_help_header(read_runbook_text(runbook.path))
    if isinstance(header, Err):
        return _stop(header.error)
    passed.append(HELP_CHECK)

    declared = extract_declared_parameters(engine, runbook)
    if isinstance(declared, Err):
        return _stop(declared.error)
    passed.append(PARAMETERS_CHECK)

    failure = error_of(check_help_completeness(header.value, declared.value, runbook.rel_path))
    if failure is not None:
        return _stop(failure)
    passed.append(DOCS_CHECK)
    return Outcome(runbook, passed_checks=tuple(passed))


def guarded(evaluate: Evaluator, runbook: Runbook) -> Outcome:
    try:
        return evaluate(runbook)
    except Exception as exc:  # noqa: BLE001
        message = f"Unexpected error while validating '{runbook.rel_path}': {type(exc).__name__}: {exc}"
        return Outcome(runbook, failures=(ValidationFailure(INTERNAL_CHECK, message),))


def run_profile(
    ctx: RunContext,
    profile: Profile,
    runbooks: Sequence[Runbook],
    evaluate: Evaluator,
    sink: ReportSink,
    skip_message: str,
) -> RunSummary:
    if not runbooks:
        sink.skipped(profile, skip_message)
        log_event(ctx, "info", "runner", "skipped", profile=profile.name)
        return RunSummary(profile=profile.name, skipped=True)
    sink.started(profile, len(runbooks))
    outcomes: list[Outcome] = []
    for runbook in runbooks:
        outcome = guarded(evaluate, runbook)
        log_event(ctx, "debug", "runner", "file-checked", file=runbook.rel_path, status=outcome.status)
        sink.outcome(profile, outcome)
        outcomes.append(outcome)
    summary = RunSummary(profile=profile.name, outcomes=tuple(outcomes))
    sink.finished(profile, summary)
    log_event(
        ctx,
        "info",
        "runner",
        "finished",
        profile=profile.name,
        total=summary.total,
        failed=summary.failed_count,
    )
    return summary


def audit_permissions(ctx: RunContext, scopes: Sequence[str], sink: ReportSink) -> RunSummary:
    runbooks = discover_scope_runbooks(ctx.workspace_root, scopes, ctx.config.excluded_dirs, ctx=ctx)
    skip = f"No runbooks found in scopes: {', '.join(scopes)}. Skipping permissions JSON validation."
    return run_profile(ctx, PERMISSIONS_AUDIT, runbooks, audit_runbook, sink, skip)


def validate_changes(
    ctx: RunContext,
    base_ref: str,
    head_ref: str,
    engine: PowerShellEngine,
    git: GitClient,
    sink: ReportSink,
) -> RunSummary:
    runbooks = discover_changed_runbooks(
        ctx.workspace_root,
        git,
        base_ref,
        head_ref,
        ci_metadata_dir=ctx.config.ci_metadata_dir,
        ctx=ctx,
    )
    skip = f"No changed runbooks between {base_ref} and {head_ref}. Skipping runbook validation."
    return run_profile(ctx, CHANGE_VALIDATION, runbooks, lambda runbook: validate_runbook(engine, runbook), sink, skip)
