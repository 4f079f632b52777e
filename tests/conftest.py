"""Shared fixtures: config objects, Notion page builders and an in-memory Notion API."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from sla_sync.config import AppConfig, NotionConfig


def make_page(
    page_id: str,
    status: Optional[str] = "Devam",
    due: Optional[str] = None,
    sla: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "object": "page",
        "id": page_id,
        "properties": {
            "Durum": {"type": "status", "status": {"name": status} if status else None},
            "Bitiş": {"type": "date", "date": {"start": due, "end": None} if due else None},
            "SLA": {"type": "select", "select": {"name": sla} if sla else None},
        },
    }


class FakeNotion:
    """Serves ``databases/<id>/query`` and ``pages/<id>`` from an in-memory page list."""

    def __init__(self, pages: List[Dict[str, Any]], database_id: str = "db-1") -> None:
        self.pages = pages
        self.database_id = database_id
        self.requests: List[httpx.Request] = []
        self.failures: Dict[str, httpx.Response] = {}

    @property
    def patches(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == "PATCH"]

    @property
    def queries(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if path in self.failures:
            return self.failures[path]

        if request.method == "POST" and path == f"/v1/databases/{self.database_id}/query":
            page_size = body.get("page_size", 100)
            start = int(body.get("start_cursor") or 0)
            chunk = self.pages[start : start + page_size]
            end = start + len(chunk)
            has_more = end < len(self.pages)
            return httpx.Response(
                200,
                json={
                    "object": "list",
                    "results": chunk,
                    "has_more": has_more,
                    "next_cursor": str(end) if has_more else None,
                },
            )

        if request.method == "PATCH" and path.startswith("/v1/pages/"):
            page_id = path.rsplit("/", 1)[-1]
            for page in self.pages:
                if page["id"] == page_id:
                    for name, value in body["properties"].items():
                        page["properties"].setdefault(name, {"type": "select"})
                        page["properties"][name]["select"] = value["select"]
                    return httpx.Response(200, json=page)
            return httpx.Response(404, json={"object": "error", "code": "object_not_found"})

        return httpx.Response(400, json={"object": "error", "code": "invalid_request_url"})

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        notion=NotionConfig(
            token="secret-token",
            database_id="db-1",
            request_delay_seconds=0,
        ),
        write_delay_seconds=0,
    )


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record requested pauses instead of sleeping."""

    calls: List[float] = []
    # Both modules share the ``time`` module object.
    monkeypatch.setattr("sla_sync.notion_client.time.sleep", calls.append)
    return calls
