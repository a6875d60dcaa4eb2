from __future__ import annotations

import logging
import time
from datetime import date, tzinfo
from typing import Any, Callable

from .config import Settings
from .date_utils import format_date, local_day, parse_date_value, resolve_timezone
from .notion_client import NotionClient
from .properties import Template


logger = logging.getLogger(__name__)


def _page_title(page: dict[str, Any]) -> str:
    title = Template.from_page(page).title
    if title != "Untitled":
        return title
    return f"{str(page.get('id') or '')[:8]}..."


def page_falls_on(page: dict[str, Any], target_date: date, *, tz: tzinfo) -> bool:
    for name, parsed in Template.from_page(page).date_fields():
        if parsed.start is None:
            continue
        try:
            start = parse_date_value(parsed.start, tz=tz)
        except ValueError:
            logger.debug("Skipping unparseable date on page %s property '%s'", page.get("id"), name)
            continue
        if local_day(start, tz) == target_date:
            return True
    return False


def filter_pages_by_date(pages: list[dict[str, Any]], target_date: date, *, tz: tzinfo) -> list[dict[str, Any]]:
    return [page for page in pages if page_falls_on(page, target_date, tz=tz)]


def run_purge_mode(
    settings: Settings,
    confirmed: bool,
    target_date: date | None = None,
    *,
    client: NotionClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any]:
    logger.info("Running purge mode...")
    logger.debug("Time Blocks Database ID: %s", settings.time_blocks_database_id)

    if not confirmed:
        if target_date:
            logger.warning("This will delete time blocks for %s!", format_date(target_date))
        else:
            logger.warning("This will delete ALL entries from the time blocks database!")
        logger.info("To confirm, run with: --purge --confirm")
        return {"status": "unconfirmed", "deleted": 0, "failed": 0}

    if client is None:
        client = NotionClient(settings)
    tz = resolve_timezone(settings.timezone)

    logger.debug("Fetching all time blocks...")
    all_pages = client.get_all_records(settings.time_blocks_database_id)
    pages = filter_pages_by_date(all_pages, target_date, tz=tz) if target_date else all_pages

    if not pages:
        if target_date:
            logger.info("No time blocks found for %s.", format_date(target_date))
        else:
            logger.info("No time blocks found. Database is already empty.")
        return {"status": "empty", "deleted": 0, "failed": 0}

    logger.debug("Found %s time blocks to delete (out of %s total)", len(pages), len(all_pages))

    deleted = 0
    failures: list[dict[str, Any]] = []
    for index, page in enumerate(pages):
        if index > 0:
            sleep(settings.request_interval_seconds)
        title = _page_title(page)
        logger.debug("Deleting: %s", title)
        try:
            client.archive_record(str(page.get("id")))
        except Exception as exc:
            logger.error("Failed to delete page %s (%s): %s", page.get("id"), title, exc)
            failures.append({"id": page.get("id"), "title": title, "error": str(exc)})
            continue
        deleted += 1

    logger.info("Purge complete: %s deleted, %s failed", deleted, len(failures))
    return {
        "status": "partial" if failures else "purged",
        "deleted": deleted,
        "failed": len(failures),
        "failures": failures,
    }
