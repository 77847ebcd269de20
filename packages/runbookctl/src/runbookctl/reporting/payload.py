from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import jsonschema

from ..errors import ScriptError
from ..exit_codes import ERR_INTERNAL

if TYPE_CHECKING:
    from ..checks.model import RunSummary
    from ..core.context import RunContext

REPORT_SCHEMA = Path(__file__).resolve().parents[1] / "schemas" / "report.schema.json"


def build_report_payload(ctx: RunContext, summary: RunSummary) -> dict[str, object]:
    return {
        "schema_version": 1,
        "tool": "runbookctl",
        "kind": summary.profile,
        "run_id": ctx.run_id,
        "status": summary.status,
        "total_count": summary.total,
        "passed_count": summary.passed_count,
        "failed_count": summary.failed_count,
        "files": [
            {
                "path": outcome.runbook.rel_path,
                "status": outcome.status,
                "passed_checks": list(outcome.passed_checks),
                "failures": [{"check": f.check, "message": f.message} for f in outcome.failures],
            }
            for outcome in summary.outcomes
        ],
    }


def validate_report_payload(payload: dict[str, object]) -> None:
    schema = json.loads(REPORT_SCHEMA.read_text(encoding="utf-8"))
    try:
        jsonschema.validate(payload, schema)
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ScriptError(f"report schema validation failed at {loc}: {exc.message}", ERR_INTERNAL, kind="report_error") from exc


def write_report(ctx: RunContext, summary: RunSummary, path: Path) -> Path:
    payload = build_report_payload(ctx, summary)
    validate_report_payload(payload)
    out = path if path.is_absolute() else ctx.workspace_root / path
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return out
