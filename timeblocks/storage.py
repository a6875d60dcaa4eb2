from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .properties import Template


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)


def read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def write_yaml(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(
        yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, width=4096),
        encoding="utf-8",
    )
    tmp_path.replace(path)


def read_yaml(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    return loaded if isinstance(loaded, dict) else None


def save_schema_snapshot(path: Path, database: dict[str, Any]) -> None:
    write_json(path, {"database": database, "saved_at": _utc_now_iso()})


def load_schema_snapshot(path: Path) -> dict[str, Any] | None:
    payload = read_json(path)
    if not payload or not isinstance(payload.get("database"), dict):
        return None
    return payload["database"]


def save_templates_snapshot(path: Path, templates: list[Template]) -> None:
    write_yaml(
        path,
        {
            "templates": [template.to_payload() for template in templates],
            "saved_at": _utc_now_iso(),
        },
    )


def load_templates_snapshot(path: Path) -> list[Template]:
    try:
        payload = read_yaml(path)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Could not parse templates file {path}: {exc}") from exc
    entries = payload.get("templates") if payload else None
    if not isinstance(entries, list) or not entries:
        raise RuntimeError("No templates found. Run with --init first to create templates.")
    return [Template.from_payload(entry) for entry in entries]
