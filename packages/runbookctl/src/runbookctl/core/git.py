from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ..errors import GitError
from ..exit_codes import ERR_DISCOVERY
from .process import run_command

if TYPE_CHECKING:
    from .context import RunContext


class GitClient(Protocol):
    def commit_parents(self, rev: str) -> list[str]: ...

    def resolve(self, rev: str) -> str: ...

    def changed_files(self, from_rev: str, to_rev: str) -> list[str]: ...


class SubprocessGit:
    """Git queries backed by the `git` executable in the workspace."""

    def __init__(self, workspace_root: Path, ctx: RunContext | None = None) -> None:
        self.workspace_root = workspace_root
        self.ctx = ctx

    def _git(self, *args: str) -> str:
        cmd = ["git", "-c", "core.quotepath=false", *args]
        try:
            res = run_command(cmd, self.workspace_root, ctx=self.ctx)
        except OSError as exc:
            raise GitError(f"unable to run git: {exc}", ERR_DISCOVERY, kind="git_error") from exc
        if res.code != 0:
            detail = res.combined_output or f"exit code {res.code}"
            raise GitError(f"`{' '.join(cmd)}` failed: {detail}", ERR_DISCOVERY, kind="git_error")
        return res.stdout

    def commit_parents(self, rev: str) -> list[str]:
        # rev-list --parents prints the commit itself followed by its parents.
        line = self._git("rev-list", "--parents", "-n", "1", rev).strip()
        if not line:
            raise GitError(f"unable to resolve revision `{rev}`", ERR_DISCOVERY, kind="git_error")
        return line.split()[1:]

    def resolve(self, rev: str) -> str:
        sha = self._git("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}").strip()
        if not sha:
            raise GitError(f"unable to resolve revision `{rev}`", ERR_DISCOVERY, kind="git_error")
        return sha

    def changed_files(self, from_rev: str, to_rev: str) -> list[str]:
        out = self._git("diff", "--name-only", "--diff-filter=AM", from_rev, to_rev)
        return [line.strip() for line in out.splitlines() if line.strip()]
