from __future__ import annotations

import logging
import time
from typing import Any

import requests

from .config import Settings


logger = logging.getLogger(__name__)

API_URL = "https://api.notion.com/v1"
TIMEOUT_SECONDS = 30
PAGE_SIZE = 100
DEFAULT_RETRY_AFTER_SECONDS = 1.0
MAX_RETRY_AFTER_SECONDS = 60.0


def _retry_after_seconds(response: requests.Response) -> float:
    raw = response.headers.get("Retry-After")
    try:
        seconds = float(raw) if raw is not None else DEFAULT_RETRY_AFTER_SECONDS
    except ValueError:
        seconds = DEFAULT_RETRY_AFTER_SECONDS
    return min(max(seconds, 0.0), MAX_RETRY_AFTER_SECONDS)


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:500]


class NotionClient:
    def __init__(self, settings: Settings):
        self.api_key = settings.notion_api_key
        self.notion_version = settings.notion_version
        self.request_interval_seconds = settings.request_interval_seconds
        self.max_query_pages = settings.max_query_pages
        self.session = requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json",
        }

    def _request(
        self, method: str, path: str, *, params: dict[str, Any] | None = None, json: dict[str, Any] | None = None
    ) -> requests.Response:
        response = self.session.request(
            method,
            f"{API_URL}{path}",
            headers=self._headers(),
            params=params,
            json=json,
            timeout=TIMEOUT_SECONDS,
        )
        if response.status_code == 429:
            retry_after = _retry_after_seconds(response)
            logger.warning("Notion rate limit hit on %s %s. Retrying in %ss.", method, path, retry_after)
            time.sleep(retry_after)
            response = self.session.request(
                method,
                f"{API_URL}{path}",
                headers=self._headers(),
                params=params,
                json=json,
                timeout=TIMEOUT_SECONDS,
            )
        if response.status_code >= 400:
            raise requests.HTTPError(
                f"Notion {method} {path} failed with {response.status_code}: {_error_message(response)}",
                response=response,
            )
        return response

    def get_schema(self, database_id: str) -> dict[str, Any]:
        response = self._request("GET", f"/databases/{database_id}")
        return response.json()

    def update_schema_options(
        self,
        database_id: str,
        property_name: str,
        property_type: str,
        options: list[dict[str, Any]],
    ) -> dict[str, Any]:
        response = self._request(
            "PATCH",
            f"/databases/{database_id}",
            json={"properties": {property_name: {property_type: {"options": options}}}},
        )
        return response.json()

    def get_all_records(self, database_id: str) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        start_cursor: str | None = None
        page = 1
        while page <= self.max_query_pages:
            body: dict[str, Any] = {"page_size": PAGE_SIZE}
            if start_cursor:
                body["start_cursor"] = start_cursor
            payload = self._request("POST", f"/databases/{database_id}/query", json=body).json()
            records.extend(item for item in payload.get("results") or [] if isinstance(item, dict))
            start_cursor = payload.get("next_cursor")
            if not payload.get("has_more") or not start_cursor:
                break
            page += 1
            time.sleep(self.request_interval_seconds)
        else:
            logger.warning(
                "Notion query pagination hit cap (%s pages, page_size=%s). Results may be truncated.",
                self.max_query_pages,
                PAGE_SIZE,
            )
        return records

    def create_record(self, database_id: str, properties: dict[str, Any]) -> str:
        response = self._request(
            "POST",
            "/pages",
            json={"parent": {"database_id": database_id}, "properties": properties},
        )
        return str(response.json().get("id") or "")

    def archive_record(self, page_id: str) -> None:
        self._request("PATCH", f"/pages/{page_id}", json={"archived": True})
