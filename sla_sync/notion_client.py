from __future__ import annotations

from typing import Any, Dict, List

import logging
import time

import httpx

from .config import NotionConfig

LOGGER = logging.getLogger(__name__)


class NotionAPIError(RuntimeError):
    """Non-success response returned by the Notion API."""

    def __init__(self, status_code: int, reason: str, body: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"{status_code} {reason}: {body}")


class NotionClient:
    """Thin wrapper around the Notion REST API for this project."""

    def __init__(self, conf: NotionConfig, http_client: httpx.Client | None = None) -> None:
        self._conf = conf
        self._owns_client = http_client is None
        self._http = http_client or self._build_http_client()

    def _build_http_client(self) -> httpx.Client:
        kwargs: Dict[str, Any] = {}
        if self._conf.timeout is not None:
            kwargs["timeout"] = self._conf.timeout
        return httpx.Client(**kwargs)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._conf.token}",
            "Notion-Version": self._conf.notion_version,
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Reading -----------------------------------------------------------------
    def list_all(
        self,
        database_id: str,
        *,
        query_filter: Dict[str, Any] | None = None,
    ) -> List[Dict[str, Any]]:
        """Query every page of a database, following ``next_cursor`` until exhausted."""

        pages: List[Dict[str, Any]] = []
        cursor: str | None = None
        page_number = 0
        while True:
            payload: Dict[str, Any] = {"page_size": self._conf.page_size}
            if cursor:
                payload["start_cursor"] = cursor
            if query_filter:
                payload["filter"] = query_filter

            data = self._request("POST", f"databases/{database_id}/query", payload)
            results = data.get("results") or []
            pages.extend(results)
            page_number += 1
            LOGGER.debug(
                "Fetched query page %s with %s results (total %s)",
                page_number,
                len(results),
                len(pages),
            )

            cursor = data.get("next_cursor")
            if not data.get("has_more"):
                break
            if not cursor:
                LOGGER.warning(
                    "Query page %s reported more results without a next_cursor; "
                    "stopping after %s pages, results may be incomplete",
                    page_number,
                    len(pages),
                )
                break
            time.sleep(self._conf.request_delay_seconds)

        LOGGER.info("Fetched %s pages from database %s", len(pages), database_id)
        return pages

    # Writing -----------------------------------------------------------------
    def update_label(self, page_id: str, property_name: str, label: str) -> Dict[str, Any]:
        """Set a select property on a single page."""

        payload = {"properties": {property_name: {"select": {"name": label}}}}
        return self._request("PATCH", f"pages/{page_id}", payload)

    # Internal ----------------------------------------------------------------
    def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._conf.base_url}/{path}"
        response = self._http.request(method, url, headers=self._headers(), json=payload)
        if not response.is_success:
            raise NotionAPIError(response.status_code, response.reason_phrase, response.text)
        return response.json()
