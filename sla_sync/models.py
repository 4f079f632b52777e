from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SLAStatus(str, Enum):
    ON_TIME = "on_time"
    AT_RISK = "at_risk"
    BREACHED = "breached"


@dataclass(slots=True)
class PageRecord:
    """Normalized view of a single Notion database page."""

    page_id: str
    status: Optional[str]
    due: Optional[str]  # raw ``date.start`` value
    sla: Optional[str]


@dataclass(slots=True)
class PlannedUpdate:
    page_id: str
    label: str
    previous: Optional[str]


@dataclass(slots=True)
class SyncSummary:
    fetched: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    dry_run: bool = False
