from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Optional


SCHEMA_VERSION = 1
TOOL_NAME = "Blue IdP Gate"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def dump_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=False, default=str)


def atomic_write_json(path: str, obj: Any) -> None:
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        f.write(dump_json(obj))
        f.write("\n")
    os.replace(tmp_path, path)


def build_check_report(
    *,
    provider: str,
    server: str,
    token_ok: bool,
    write_actions_enabled: Optional[bool] = None,
    tools: Optional[list[str]] = None,
    error: Optional[str] = None,
) -> dict:
    summary: dict[str, Any] = {"token_acquired": token_ok, "tools": len(tools or [])}
    if write_actions_enabled is not None:
        summary["write_actions_enabled"] = write_actions_enabled

    report: dict[str, Any] = {
        "tool": TOOL_NAME,
        "schema_version": SCHEMA_VERSION,
        "provider": provider,
        "server": server,
        "generated_at": utc_now_iso(),
        "tools": list(tools or []),
        "summary": summary,
    }
    if error:
        report["errors"] = [{"where": "token", "error": error}]
    return report
