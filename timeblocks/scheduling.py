from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Any, Iterable

from .date_utils import as_local_datetime, local_day, parse_date_value, today
from .properties import MultiSelectField, SelectField, Template


logger = logging.getLogger(__name__)

CATEGORY_PROPERTY_TYPES = ("select", "multi_select")


def _normalize(value: str) -> str:
    return value.strip().lower()


def _date_bounds(template: Template, tz: tzinfo) -> Iterable[tuple[str, datetime | date]]:
    for name, parsed in template.date_fields():
        for raw in (parsed.start, parsed.end):
            if raw is not None:
                yield name, parse_date_value(raw, tz=tz)


def resolve_reference_date(
    templates: Iterable[Template],
    *,
    tz: tzinfo,
    default: date | None = None,
) -> date:
    earliest: datetime | None = None
    earliest_value: datetime | date | None = None
    for template in templates:
        for _name, value in _date_bounds(template, tz):
            comparable = as_local_datetime(value, tz)
            if earliest is None or comparable < earliest:
                earliest = comparable
                earliest_value = value
    if earliest_value is None:
        return default if default is not None else today(tz)
    return local_day(earliest_value, tz)


def template_start_time(template: Template, *, tz: tzinfo) -> datetime | None:
    starts = [
        as_local_datetime(parse_date_value(parsed.start, tz=tz), tz)
        for _name, parsed in template.date_fields()
        if parsed.start is not None
    ]
    return min(starts) if starts else None


def sort_templates_by_start_time(templates: Iterable[Template], *, tz: tzinfo) -> list[Template]:
    keyed = [(template_start_time(template, tz=tz), template) for template in templates]
    keyed.sort(key=lambda item: (item[0] is None, item[0].timestamp() if item[0] is not None else 0.0))
    return [template for _start, template in keyed]


def find_category_field(
    template: Template, property_name: str
) -> tuple[str, SelectField | MultiSelectField] | None:
    wanted = _normalize(property_name)
    for name, parsed in template.fields().items():
        if _normalize(name) != wanted:
            continue
        if isinstance(parsed, (SelectField, MultiSelectField)):
            return name, parsed
    return None


def category_values(template: Template, property_name: str) -> list[str]:
    found = find_category_field(template, property_name)
    if found is None:
        return []
    _name, parsed = found
    if isinstance(parsed, SelectField):
        return [parsed.name] if parsed.name else []
    return list(parsed.names)


def matches_category(template: Template, category: str, *, property_name: str) -> bool:
    wanted = _normalize(category)
    return any(_normalize(value) == wanted for value in category_values(template, property_name))


def filter_templates_by_category(
    templates: Iterable[Template],
    category: str,
    *,
    property_name: str,
) -> list[Template]:
    return [
        template
        for template in templates
        if matches_category(template, category, property_name=property_name)
    ]


def extract_category_values(templates: Iterable[Template], *, property_name: str) -> list[str]:
    seen: list[str] = []
    for template in templates:
        for value in category_values(template, property_name):
            if value not in seen:
                seen.append(value)
    return seen


def _find_schema_property(schema: dict[str, Any], property_name: str) -> tuple[str, dict[str, Any]] | None:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return None
    wanted = _normalize(property_name)
    for name, config in properties.items():
        if _normalize(name) != wanted or not isinstance(config, dict):
            continue
        if config.get("type") in CATEGORY_PROPERTY_TYPES:
            return name, config
    return None


def ensure_category_options(
    client: Any,
    database_id: str,
    values: list[str],
    *,
    property_name: str,
) -> list[str]:
    if not values:
        return []

    logger.debug("Checking %s options in database schema...", property_name)
    schema = client.get_schema(database_id)
    found = _find_schema_property(schema, property_name)
    if found is None:
        logger.warning(
            'No "%s" select/multi_select property found in database schema. Skipping option check.',
            property_name,
        )
        return []

    schema_name, config = found
    property_type = str(config["type"])
    type_config = config.get(property_type) if isinstance(config.get(property_type), dict) else {}
    existing_options = [option for option in type_config.get("options") or [] if isinstance(option, dict)]
    existing_names = {option.get("name") for option in existing_options}

    missing = [value for value in values if value not in existing_names]
    if not missing:
        logger.debug("All %s options already exist in schema.", property_name)
        return []

    logger.info("Adding %s missing %s option(s): %s", len(missing), schema_name, ", ".join(missing))
    options = existing_options + [{"name": name, "color": "default"} for name in missing]
    client.update_schema_options(database_id, schema_name, property_type, options)
    return missing
