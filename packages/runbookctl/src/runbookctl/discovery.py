"""Runbook discovery: every runbook under a set of scopes, or the runbooks changed between two revisions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .checks.model import RUNBOOK_SUFFIX, Runbook
from .core.logging import log_event
from .errors import ScriptError
from .exit_codes import ERR_DISCOVERY

if TYPE_CHECKING:
    from .core.context import RunContext
    from .core.git import GitClient


@dataclass(frozen=True)
class DiffRange:
    from_rev: str
    to_rev: str
    merge_commit: bool = False


def is_runbook_name(name: str) -> bool:
    return name.endswith(RUNBOOK_SUFFIX) and len(name) > len(RUNBOOK_SUFFIX)


def discover_scope_runbooks(
    workspace_root: Path,
    scopes: Iterable[str],
    excluded_dirs: Iterable[str],
    ctx: RunContext | None = None,
) -> list[Runbook]:
    excluded = frozenset(excluded_dirs)
    found: list[Runbook] = []
    for scope in scopes:
        scope_dir = workspace_root / scope
        if not scope_dir.is_dir():
            if ctx is not None:
                log_event(ctx, "debug", "discovery", "scope-missing", scope=scope)
            continue
        try:
            candidates = [path for path in scope_dir.rglob(f"*{RUNBOOK_SUFFIX}") if path.is_file()]
        except OSError as exc:
            raise ScriptError(f"unable to enumerate scope `{scope}`: {exc}", ERR_DISCOVERY, kind="discovery_error") from exc
        for path in candidates:
            runbook = Runbook.from_workspace(workspace_root, path)
            parts = runbook.rel_path.split("/")
            if not is_runbook_name(parts[-1]):
                continue
            if excluded.intersection(parts[:-1]):
                continue
            found.append(runbook)
        if ctx is not None:
            log_event(ctx, "debug", "discovery", "scope-scanned", scope=scope, total=len(found))
    return sorted(found, key=lambda runbook: str(runbook.path))


def resolve_diff_range(git: GitClient, base_ref: str, head_ref: str) -> DiffRange:
    """Pick the two revisions to diff.

    A merge-commit head is usually the CI platform's throwaway merge of the
    target branch into the source branch; diffing the literal refs would pick up
    unrelated upstream changes, so the range becomes the first parent's first
    parent against the second (incoming) parent. When the first parent is a
    root commit the literal refs are compared instead.
    """
    parents = git.commit_parents(head_ref)
    if len(parents) < 2:
        return DiffRange(from_rev=base_ref, to_rev=head_ref)
    # A root-commit first parent has no ^1 to diff from.
    if not git.commit_parents(parents[0]):
        return DiffRange(from_rev=base_ref, to_rev=head_ref)
    return DiffRange(from_rev=git.resolve(f"{parents[0]}^1"), to_rev=parents[1], merge_commit=True)


def discover_changed_runbooks(
    workspace_root: Path,
    git: GitClient,
    base_ref: str,
    head_ref: str,
    ci_metadata_dir: str = ".github",
    ctx: RunContext | None = None,
) -> list[Runbook]:
    diff_range = resolve_diff_range(git, base_ref, head_ref)
    if ctx is not None:
        log_event(
            ctx,
            "info",
            "discovery",
            "diff-range",
            base=base_ref,
            head=head_ref,
            from_rev=diff_range.from_rev,
            to_rev=diff_range.to_rev,
            merge_commit=diff_range.merge_commit,
        )
    metadata_prefix = ci_metadata_dir.rstrip("/") + "/"
    selected: set[str] = set()
    for rel in git.changed_files(diff_range.from_rev, diff_range.to_rev):
        rel = rel.replace("\\", "/")
        if rel.startswith(metadata_prefix):
            continue
        if not is_runbook_name(rel.rpartition("/")[2]):
            continue
        selected.add(rel)
    return [Runbook(path=workspace_root / rel, rel_path=rel) for rel in sorted(selected)]
