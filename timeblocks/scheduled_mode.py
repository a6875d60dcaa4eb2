from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable

from .config import Settings
from .date_utils import format_date, resolve_timezone, today
from .notion_client import NotionClient
from .properties import ProjectionContext, Template, project_properties
from .scheduling import (
    ensure_category_options,
    extract_category_values,
    filter_templates_by_category,
    resolve_reference_date,
    sort_templates_by_start_time,
)
from .storage import load_templates_snapshot


logger = logging.getLogger(__name__)


def _result(
    status: str,
    *,
    target_date: date,
    reference_date: date | None,
    attempted: int = 0,
    created_ids: list[str] | None = None,
    failures: list[dict[str, Any]] | None = None,
    added_options: list[str] | None = None,
) -> dict[str, Any]:
    created_ids = created_ids or []
    failures = failures or []
    return {
        "status": status,
        "target_date": format_date(target_date),
        "reference_date": format_date(reference_date) if reference_date else None,
        "attempted": attempted,
        "created": len(created_ids),
        "failed": len(failures),
        "created_ids": created_ids,
        "failures": failures,
        "added_options": added_options or [],
    }


def build_records(
    templates: list[Template],
    *,
    reference_date: date,
    target_date: date,
    tz: Any,
) -> list[tuple[Template, dict[str, Any]]]:
    records = []
    for template in templates:
        context = ProjectionContext(
            reference_date=reference_date,
            target_date=target_date,
            tz=tz,
            template_title=template.title,
        )
        records.append((template, project_properties(template, context)))
    return records


def run_scheduled_mode(
    settings: Settings,
    target_date: date,
    category: str | None = None,
    *,
    client: NotionClient | None = None,
    templates: list[Template] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any]:
    logger.info("Running scheduled mode...")
    tz = resolve_timezone(settings.timezone)

    if target_date == today(tz):
        logger.debug("Target date: %s (today)", format_date(target_date))
    else:
        logger.debug("Target date: %s", format_date(target_date))
    if category:
        logger.debug("Category filter: %s=%s", settings.category_property, category)
    logger.debug("Time Blocks Database ID: %s", settings.time_blocks_database_id)

    if templates is None:
        logger.debug("Loading templates from %s", settings.templates_file)
        templates = load_templates_snapshot(settings.templates_file)
    logger.debug("Found %s templates", len(templates))

    reference_date = resolve_reference_date(templates, tz=tz)
    logger.debug("Reference date: %s", format_date(reference_date))

    selected = sort_templates_by_start_time(templates, tz=tz)
    logger.debug("Templates sorted by start time")

    if category:
        selected = filter_templates_by_category(
            selected,
            category,
            property_name=settings.category_property,
        )
        logger.debug("Filtered to %s templates matching %s: %s", len(selected), settings.category_property, category)
        if not selected:
            logger.warning("No templates found matching %s '%s'.", settings.category_property, category)
            logger.info("Exiting without creating any time blocks.")
            return _result("no_templates", target_date=target_date, reference_date=reference_date)

    # Projection runs before any write so malformed dates abort the run cleanly.
    records = build_records(selected, reference_date=reference_date, target_date=target_date, tz=tz)

    if client is None:
        client = NotionClient(settings)

    added_options = ensure_category_options(
        client,
        settings.time_blocks_database_id,
        extract_category_values(selected, property_name=settings.category_property),
        property_name=settings.category_property,
    )

    logger.debug("Creating time blocks in order...")
    created_ids: list[str] = []
    failures: list[dict[str, Any]] = []
    for index, (template, properties) in enumerate(records):
        if index > 0:
            sleep(settings.request_interval_seconds)
        logger.debug("Creating: %s", template.title)
        try:
            page_id = client.create_record(settings.time_blocks_database_id, properties)
        except Exception as exc:
            logger.error("Failed to create time block '%s': %s", template.title, exc)
            failures.append({"title": template.title, "error": str(exc)})
            continue
        created_ids.append(page_id)
        logger.debug("Created '%s' (%s)", template.title, page_id)

    logger.info("Created %s of %s time blocks", len(created_ids), len(records))
    if failures:
        logger.warning("%s time block(s) failed to create", len(failures))
    return _result(
        "partial" if failures else "created",
        target_date=target_date,
        reference_date=reference_date,
        attempted=len(records),
        created_ids=created_ids,
        failures=failures,
        added_options=added_options,
    )
