from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .config import RunbookConfig, load_config
from .env import getenv
from .paths import find_workspace_root


@dataclass(frozen=True)
class RunContext:
    run_id: str
    workspace_root: Path
    config: RunbookConfig
    verbose: bool
    quiet: bool
    log_json: bool

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        workspace: str | None,
        config_path: str | None = None,
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool = False,
    ) -> "RunContext":
        workspace_root = find_workspace_root(workspace)
        default_run = f"runbookctl-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        resolved_run_id = run_id or getenv("RUN_ID", default_run) or default_run
        return cls(
            run_id=resolved_run_id,
            workspace_root=workspace_root,
            config=load_config(workspace_root, config_path),
            verbose=verbose,
            quiet=quiet,
            log_json=log_json,
        )
