from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

from dotenv import load_dotenv

from .date_utils import system_timezone_name


load_dotenv()


Number = TypeVar("Number", int, float)

DEFAULT_NOTION_VERSION = "2022-06-28"


def _str_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _bounded_env(name: str, default: Number, cast: Callable[[str], Number], minimum: Number, maximum: Number) -> Number:
    raw = os.getenv(name)
    try:
        value = cast(raw.strip()) if raw is not None else default
    except ValueError:
        value = default
    return min(max(value, minimum), maximum)


def _int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    return _bounded_env(name, default, int, minimum, maximum)


def _float_env(name: str, default: float, minimum: float, maximum: float) -> float:
    return _bounded_env(name, default, float, minimum, maximum)


@dataclass(frozen=True)
class Settings:
    notion_api_key: str
    templates_database_id: str
    time_blocks_database_id: str
    notion_version: str

    state_dir: Path
    schema_file: Path
    templates_file: Path

    category_property: str
    default_category: str | None
    request_interval_seconds: float
    max_query_pages: int
    log_level: str
    timezone: str

    @classmethod
    def from_env(cls) -> "Settings":
        state_dir = Path(os.getenv("STATE_DIR", ".")).resolve()
        schema_file = state_dir / os.getenv("SCHEMA_FILE", ".notion-schema.json")
        templates_file = state_dir / os.getenv("TEMPLATES_FILE", ".notion-templates.yaml")

        return cls(
            notion_api_key=_str_env("NOTION_API_KEY"),
            templates_database_id=_str_env("NOTION_TEMPLATES_DATABASE_ID"),
            time_blocks_database_id=_str_env("NOTION_TIME_BLOCKS_DATABASE_ID"),
            notion_version=_str_env("NOTION_VERSION", default=DEFAULT_NOTION_VERSION),
            state_dir=state_dir,
            schema_file=schema_file,
            templates_file=templates_file,
            category_property=_str_env("CATEGORY_PROPERTY", default="Day"),
            default_category=_str_env("DEFAULT_CATEGORY") or None,
            request_interval_seconds=_float_env("REQUEST_INTERVAL_SECONDS", 0.35, 0.0, 10.0),
            max_query_pages=_int_env("MAX_QUERY_PAGES", 100, 1, 1000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            timezone=_str_env("TIMEZONE", "TZ") or system_timezone_name(),
        )

    def validate(self) -> None:
        missing = []
        if not self.notion_api_key:
            missing.append("NOTION_API_KEY")
        if not self.templates_database_id:
            missing.append("NOTION_TEMPLATES_DATABASE_ID")
        if not self.time_blocks_database_id:
            missing.append("NOTION_TIME_BLOCKS_DATABASE_ID")
        if missing:
            missing_str = ", ".join(missing)
            raise ValueError(f"Missing required environment variables: {missing_str}")

    def ensure_state_paths(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
