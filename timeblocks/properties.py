from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Union

from .date_utils import (
    as_local_datetime,
    format_datetime,
    parse_date_value,
    recalculate_date_value,
    serialize_date_value,
    timezone_label,
)


logger = logging.getLogger(__name__)

READ_ONLY_TYPES = {
    "formula",
    "rollup",
    "created_time",
    "created_by",
    "last_edited_time",
    "last_edited_by",
    "unique_id",
    "verification",
    "button",
}


@dataclass(frozen=True)
class TitleField:
    text: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class RichTextField:
    text: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class NumberField:
    value: int | float | None = None


@dataclass(frozen=True)
class CheckboxField:
    value: bool = False


@dataclass(frozen=True)
class UrlField:
    value: str | None = None


@dataclass(frozen=True)
class EmailField:
    value: str | None = None


@dataclass(frozen=True)
class PhoneNumberField:
    value: str | None = None


@dataclass(frozen=True)
class SelectField:
    name: str | None = None


@dataclass(frozen=True)
class StatusField:
    name: str | None = None


@dataclass(frozen=True)
class MultiSelectField:
    names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RelationField:
    ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PeopleField:
    ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FilesField:
    files: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class DateField:
    start: str | None = None
    end: str | None = None
    time_zone: str | None = None


@dataclass(frozen=True)
class ReadOnlyField:
    type_name: str = "unknown"


Field = Union[
    TitleField,
    RichTextField,
    NumberField,
    CheckboxField,
    UrlField,
    EmailField,
    PhoneNumberField,
    SelectField,
    StatusField,
    MultiSelectField,
    RelationField,
    PeopleField,
    FilesField,
    DateField,
    ReadOnlyField,
]


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _option_name(value: Any) -> str | None:
    if not isinstance(value, dict):
        return None
    name = value.get("name")
    return name if isinstance(name, str) and name else None


def _ids(value: Any) -> list[str]:
    ids = []
    for item in _list(value):
        if isinstance(item, dict) and item.get("id"):
            ids.append(str(item["id"]))
    return ids


def _date_str(value: Any) -> str | None:
    # Hand-edited YAML snapshots may hold unquoted dates.
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return _optional_str(value)


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_property(raw: Any) -> Field:
    if not isinstance(raw, dict):
        return ReadOnlyField()
    type_name = str(raw.get("type") or "unknown")
    if type_name in READ_ONLY_TYPES:
        return ReadOnlyField(type_name)
    value = raw.get(type_name)

    if type_name == "title":
        return TitleField(_list(value))
    if type_name == "rich_text":
        return RichTextField(_list(value))
    if type_name == "number":
        return NumberField(value if isinstance(value, (int, float)) and not isinstance(value, bool) else None)
    if type_name == "checkbox":
        return CheckboxField(bool(value))
    if type_name == "url":
        return UrlField(value)
    if type_name == "email":
        return EmailField(value)
    if type_name == "phone_number":
        return PhoneNumberField(value)
    if type_name == "select":
        return SelectField(_option_name(value))
    if type_name == "status":
        return StatusField(_option_name(value))
    if type_name == "multi_select":
        names = [name for name in (_option_name(item) for item in _list(value)) if name]
        return MultiSelectField(names)
    if type_name == "relation":
        return RelationField(_ids(value))
    if type_name == "people":
        return PeopleField(_ids(value))
    if type_name == "files":
        return FilesField([item for item in _list(value) if isinstance(item, dict)])
    if type_name == "date":
        if not isinstance(value, dict):
            return DateField()
        return DateField(
            start=_date_str(value.get("start")),
            end=_date_str(value.get("end")),
            time_zone=_optional_str(value.get("time_zone")),
        )
    return ReadOnlyField(type_name)


@dataclass(frozen=True)
class Template:
    title: str
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "Template":
        if not isinstance(payload, dict):
            raise ValueError(f"Template entry must be a mapping, got {type(payload).__name__}")
        properties = payload.get("properties")
        title = payload.get("title")
        return cls(
            title=str(title) if title else "Untitled",
            properties=dict(properties) if isinstance(properties, dict) else {},
        )

    @classmethod
    def from_page(cls, page: dict[str, Any]) -> "Template":
        properties = page.get("properties") if isinstance(page.get("properties"), dict) else {}
        title = "Untitled"
        for value in properties.values():
            if isinstance(value, dict) and value.get("type") == "title" and value.get("title"):
                title = "".join(
                    str(part.get("plain_text") or "") for part in value["title"] if isinstance(part, dict)
                ) or title
                break
        return cls(title=title, properties=dict(properties))

    def fields(self) -> dict[str, Field]:
        return {name: parse_property(raw) for name, raw in self.properties.items()}

    def date_fields(self) -> list[tuple[str, DateField]]:
        return [(name, parsed) for name, parsed in self.fields().items() if isinstance(parsed, DateField)]

    def to_payload(self) -> dict[str, Any]:
        return {"title": self.title, "properties": self.properties}


@dataclass(frozen=True)
class ProjectionContext:
    reference_date: date
    target_date: date
    tz: tzinfo
    template_title: str = ""


def _project_files(name: str, files: list[dict[str, Any]], context: ProjectionContext) -> list[dict[str, Any]]:
    projected = []
    for item in files:
        external = item.get("external")
        if item.get("type") == "external" and isinstance(external, dict):
            projected.append({"name": item.get("name"), "external": {"url": external.get("url")}})
            continue
        logger.warning(
            "Template '%s' property '%s' carries uploaded file '%s'; it cannot be re-uploaded and may fail to copy.",
            context.template_title,
            name,
            item.get("name"),
        )
        projected.append(item)
    return projected


def _project_date(name: str, parsed: DateField, context: ProjectionContext) -> dict[str, Any] | None:
    if parsed.start is None and parsed.end is None:
        return {"date": None}

    tz = context.tz
    new_start = None
    new_end = None
    if parsed.start is not None:
        new_start = recalculate_date_value(
            parse_date_value(parsed.start, tz=tz), context.reference_date, context.target_date, tz
        )
    if parsed.end is not None:
        new_end = recalculate_date_value(
            parse_date_value(parsed.end, tz=tz), context.reference_date, context.target_date, tz
        )

    if new_start is not None and new_end is not None:
        if as_local_datetime(new_start, tz) >= as_local_datetime(new_end, tz):
            logger.warning(
                "Invalid date range for template '%s' property '%s': start %s is not before end %s. "
                "Skipping this property.",
                context.template_title,
                name,
                format_datetime(new_start, tz),
                format_datetime(new_end, tz),
            )
            return None

    logger.debug(
        "Template '%s' property '%s': %s -> %s, %s -> %s",
        context.template_title,
        name,
        parsed.start,
        format_datetime(new_start, tz) if new_start is not None else None,
        parsed.end,
        format_datetime(new_end, tz) if new_end is not None else None,
    )

    value: dict[str, Any] = {
        "start": serialize_date_value(new_start, tz) if new_start is not None else None,
        "end": serialize_date_value(new_end, tz) if new_end is not None else None,
    }
    # All-day values carry no time zone in Notion.
    has_time = any(
        isinstance(bound, str) and "T" in bound for bound in (value["start"], value["end"])
    )
    if has_time:
        value["time_zone"] = timezone_label(tz)
    return {"date": value}


def project_property(name: str, parsed: Field, context: ProjectionContext) -> dict[str, Any] | None:
    if isinstance(parsed, TitleField):
        return {"title": list(parsed.text)}
    if isinstance(parsed, RichTextField):
        return {"rich_text": list(parsed.text)}
    if isinstance(parsed, NumberField):
        return {"number": parsed.value}
    if isinstance(parsed, CheckboxField):
        return {"checkbox": parsed.value}
    if isinstance(parsed, UrlField):
        return {"url": parsed.value}
    if isinstance(parsed, EmailField):
        return {"email": parsed.value}
    if isinstance(parsed, PhoneNumberField):
        return {"phone_number": parsed.value}
    if isinstance(parsed, SelectField):
        return {"select": {"name": parsed.name} if parsed.name else None}
    if isinstance(parsed, StatusField):
        return {"status": {"name": parsed.name} if parsed.name else None}
    if isinstance(parsed, MultiSelectField):
        return {"multi_select": [{"name": option} for option in parsed.names]}
    if isinstance(parsed, RelationField):
        return {"relation": [{"id": item} for item in parsed.ids]}
    if isinstance(parsed, PeopleField):
        return {"people": [{"id": item} for item in parsed.ids]}
    if isinstance(parsed, FilesField):
        return {"files": _project_files(name, parsed.files, context)}
    if isinstance(parsed, DateField):
        return _project_date(name, parsed, context)
    if isinstance(parsed, ReadOnlyField):
        return None
    raise TypeError(f"Unsupported property variant for '{name}': {type(parsed).__name__}")


def project_properties(template: Template, context: ProjectionContext) -> dict[str, Any]:
    updated: dict[str, Any] = {}
    for name, parsed in template.fields().items():
        projected = project_property(name, parsed, context)
        if projected is not None:
            updated[name] = projected
    return updated
