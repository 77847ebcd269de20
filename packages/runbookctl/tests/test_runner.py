from __future__ import annotations

from pathlib import Path

import pytest
from helpers import GOOD_HELP, FakeEngine, FakeGit, capture_sink, make_ctx, write_runbook

from runbookctl.checks.model import AnalysisFinding, FindingSeverity
from runbookctl.errors import GitError
from runbookctl.runner import (
    CHANGE_VALIDATION,
    audit_permissions,
    audit_runbook,
    guarded,
    validate_changes,
    validate_runbook,
)

NO_NAME_DOC = """<#
.SYNOPSIS
    Creates a mailbox.
.DESCRIPTION
    Creates a mailbox for a new employee.
#>
param([string]$Name)
"""


def _git_for(*paths: str) -> FakeGit:
    return FakeGit(parents={"head": ["base"]}, changed={("base", "head"): list(paths)})


def test_validate_runbook_passes_every_check(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/Restart-Device.ps1")
    outcome = validate_runbook(FakeEngine(), runbook)
    assert outcome.passed
    assert outcome.passed_checks == CHANGE_VALIDATION.checks


def test_missing_companion_stops_before_analysis(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/foo.ps1", companion=None)
    engine = FakeEngine()
    outcome = validate_runbook(engine, runbook)
    assert [f.check for f in outcome.failures] == ["permissions"]
    assert outcome.passed_checks == ()
    assert engine.calls == []


def test_blocking_analysis_stops_before_docs(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/foo.ps1", text="not even a header\n")
    finding = AnalysisFinding(FindingSeverity.ERROR, "PSAvoidUsingInvokeExpression", "avoid iex", 2)
    engine = FakeEngine(findings={"foo.ps1": [finding]})
    outcome = validate_runbook(engine, runbook)
    assert [f.check for f in outcome.failures] == ["analysis"]
    assert outcome.passed_checks == ("permissions",)
    assert ("parse", "foo.ps1") not in engine.calls


def test_missing_parameter_doc_reports_prior_checks_as_passed(workspace: Path) -> None:
    runbook = write_runbook(workspace, "mail/New-Mailbox.ps1", text=NO_NAME_DOC)
    outcome = validate_runbook(FakeEngine(parameters={"New-Mailbox.ps1": ["Name"]}), runbook)
    assert not outcome.passed
    assert "Missing .PARAMETER section for parameter 'Name'" in outcome.failures[0].message
    assert outcome.passed_checks == ("permissions", "analysis", "help", "parameters")


def test_malformed_header_stops_before_parameter_extraction(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/foo.ps1", text="<#\n.SYNOPSIS\nx\n")
    engine = FakeEngine()
    outcome = validate_runbook(engine, runbook)
    assert [f.check for f in outcome.failures] == ["help"]
    assert engine.calls == [("analyze", "foo.ps1")]


def test_guarded_turns_unexpected_errors_into_failures(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/foo.ps1")

    def _explode(_runbook):
        raise PermissionError("permission denied: device/foo.ps1")

    outcome = guarded(_explode, runbook)
    assert outcome.failures[0].check == "internal"
    assert "PermissionError: permission denied" in outcome.failures[0].message


def test_unreadable_file_does_not_abort_the_run(workspace: Path) -> None:
    write_runbook(workspace, "device/a.ps1")
    write_runbook(workspace, "device/b.ps1")
    (workspace / "device/b.ps1").write_bytes(b"<# bad utf8 \xc3\x28 #>")
    sink, out = capture_sink()
    summary = validate_changes(make_ctx(workspace), "base", "head", FakeEngine(), _git_for("device/a.ps1", "device/b.ps1"), sink)
    assert summary.total == 2
    assert summary.failed_count == 1
    assert summary.outcomes[1].failures[0].check == "internal"
    assert "UnicodeDecodeError" in summary.outcomes[1].failures[0].message


def test_utf16_runbook_with_bom_is_validated(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/Restart-Device.ps1")
    runbook.path.write_bytes(GOOD_HELP.encode("utf-16"))
    outcome = guarded(lambda rb: validate_runbook(FakeEngine(), rb), runbook)
    assert outcome.passed, outcome.failures
    assert outcome.passed_checks == CHANGE_VALIDATION.checks


def test_deleted_changed_file_fails_only_that_file(workspace: Path) -> None:
    write_runbook(workspace, "device/a.ps1")
    sink, _ = capture_sink()
    summary = validate_changes(make_ctx(workspace), "base", "head", FakeEngine(), _git_for("device/a.ps1", "device/gone.ps1"), sink)
    assert [o.status for o in summary.outcomes] == ["pass", "fail"]
    assert summary.exit_code == 1


def test_permissions_audit_reports_every_missing_companion(workspace: Path) -> None:
    write_runbook(workspace, "device/a.ps1", companion=None)
    write_runbook(workspace, "device/b.ps1")
    write_runbook(workspace, "device/c.ps1", companion=None)
    sink, out = capture_sink()
    summary = audit_permissions(make_ctx(workspace), ["device"], sink)
    assert summary.total == 3
    assert summary.failed_count == 2
    assert summary.exit_code == 1
    assert out.getvalue().count("::error file=") == 2
    assert "Missing permissions JSON: 2" in out.getvalue()


def test_permissions_audit_with_no_runbooks_is_a_skipped_success(workspace: Path) -> None:
    sink, out = capture_sink()
    summary = audit_permissions(make_ctx(workspace), ["device", "identity"], sink)
    assert summary.skipped
    assert summary.status == "skipped"
    assert summary.exit_code == 0
    assert out.getvalue().startswith("No runbooks found in scopes: device, identity. Skipping")


def test_change_validation_with_no_changed_runbooks_is_skipped(workspace: Path) -> None:
    sink, out = capture_sink()
    summary = validate_changes(make_ctx(workspace), "base", "head", FakeEngine(), _git_for("README.md"), sink)
    assert summary.skipped
    assert summary.exit_code == 0
    assert "No changed runbooks between base and head. Skipping runbook validation." in out.getvalue()


def test_discovery_failure_is_raised_before_any_file_check(workspace: Path) -> None:
    engine = FakeEngine()
    sink, out = capture_sink()
    with pytest.raises(GitError):
        validate_changes(make_ctx(workspace), "base", "unknown", engine, FakeGit(), sink)
    assert engine.calls == []
    assert out.getvalue() == ""


def test_runs_are_idempotent(workspace: Path) -> None:
    write_runbook(workspace, "device/a.ps1", companion=None)
    write_runbook(workspace, "device/b.ps1", text=NO_NAME_DOC)
    write_runbook(workspace, "device/c.ps1", text=GOOD_HELP)
    engine = FakeEngine(parameters={"b.ps1": ["Name"]})
    git = _git_for("device/a.ps1", "device/b.ps1", "device/c.ps1")
    first = validate_changes(make_ctx(workspace), "base", "head", engine, git, capture_sink()[0])
    second = validate_changes(make_ctx(workspace), "base", "head", engine, git, capture_sink()[0])
    assert first == second
    assert first.exit_code == second.exit_code == 1


def test_audit_runbook_only_checks_companion(workspace: Path) -> None:
    runbook = write_runbook(workspace, "device/a.ps1", text="garbage")
    assert audit_runbook(runbook).passed
