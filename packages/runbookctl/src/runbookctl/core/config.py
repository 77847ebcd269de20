from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from ..errors import ScriptError
from ..exit_codes import ERR_CONFIG
from .env import getenv

CONFIG_FILENAME = ".runbookctl.yml"
CONFIG_SCHEMA = Path(__file__).resolve().parents[1] / "schemas" / "config.schema.json"


@dataclass(frozen=True)
class RunbookConfig:
    pwsh: str = "pwsh"
    analyzer_settings: Path | None = None
    doc_dirs: tuple[str, ...] = ("docs",)
    ci_metadata_dir: str = ".github"

    @property
    def excluded_dirs(self) -> frozenset[str]:
        return frozenset((*self.doc_dirs, self.ci_metadata_dir))


def _load_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ScriptError(f"invalid YAML in {path}: {exc}", ERR_CONFIG, kind="config_error") from exc
    except OSError as exc:
        raise ScriptError(f"unable to read config {path}: {exc}", ERR_CONFIG, kind="config_error") from exc


def validate_config_payload(payload: object, source: Path) -> dict[str, Any]:
    schema = json.loads(CONFIG_SCHEMA.read_text(encoding="utf-8"))
    try:
        jsonschema.validate(payload, schema)
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ScriptError(f"config validation failed for {source} at {loc}: {exc.message}", ERR_CONFIG, kind="config_error") from exc
    return dict(payload)  # type: ignore[arg-type]


def load_config(workspace_root: Path, explicit: str | None = None) -> RunbookConfig:
    """Load the workspace config, falling back to defaults when no file exists.

    An explicit `--config` path must exist; the implicit `.runbookctl.yml` is optional.
    """
    if explicit:
        path = Path(explicit)
        if not path.is_absolute():
            path = workspace_root / path
        if not path.is_file():
            raise ScriptError(f"config file not found: {path}", ERR_CONFIG, kind="config_error")
    else:
        path = workspace_root / CONFIG_FILENAME
        if not path.is_file():
            return _apply_env(RunbookConfig())
    raw = _load_yaml(path)
    data = validate_config_payload({} if raw is None else raw, path)
    settings = data.get("analyzer_settings")
    config = RunbookConfig(
        pwsh=str(data.get("pwsh", "pwsh")),
        analyzer_settings=(workspace_root / settings) if settings else None,
        doc_dirs=tuple(data.get("doc_dirs", ("docs",))),
        ci_metadata_dir=str(data.get("ci_metadata_dir", ".github")),
    )
    return _apply_env(config)


def _apply_env(config: RunbookConfig) -> RunbookConfig:
    pwsh = getenv("RUNBOOKCTL_PWSH")
    if not pwsh:
        return config
    return RunbookConfig(
        pwsh=pwsh,
        analyzer_settings=config.analyzer_settings,
        doc_dirs=config.doc_dirs,
        ci_metadata_dir=config.ci_metadata_dir,
    )
