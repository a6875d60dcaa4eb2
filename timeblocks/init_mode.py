from __future__ import annotations

import logging
from typing import Any

from .config import Settings
from .notion_client import NotionClient
from .properties import Template
from .storage import save_schema_snapshot, save_templates_snapshot


logger = logging.getLogger(__name__)


def run_init_mode(settings: Settings, *, client: NotionClient | None = None) -> dict[str, Any]:
    logger.info("Running init mode...")
    logger.debug("Templates Database ID: %s", settings.templates_database_id)
    if client is None:
        client = NotionClient(settings)

    logger.debug("Fetching templates database schema...")
    schema = client.get_schema(settings.templates_database_id)
    save_schema_snapshot(settings.schema_file, schema)
    logger.debug("Schema saved to: %s", settings.schema_file)

    logger.debug("Fetching template entries from templates database...")
    pages = client.get_all_records(settings.templates_database_id)
    logger.debug("Found %s template entries", len(pages))

    templates = [Template.from_page(page) for page in pages]
    save_templates_snapshot(settings.templates_file, templates)
    logger.debug("Templates saved to: %s", settings.templates_file)

    logger.info("Init mode completed successfully.")
    return {
        "status": "initialized",
        "templates": len(templates),
        "schema_file": str(settings.schema_file),
        "templates_file": str(settings.templates_file),
    }
