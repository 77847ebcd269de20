"""Workspace root helpers.

`Path.cwd()` is only allowed in this module.
"""

from __future__ import annotations

from pathlib import Path


def find_workspace_root(explicit: str | None = None) -> Path:
    root = Path(explicit) if explicit else Path.cwd()
    return root.resolve()

