from __future__ import annotations

import logging
import time
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from .config import AppConfig, LabelsConfig, PropertiesConfig
from .models import PageRecord, PlannedUpdate, SLAStatus, SyncSummary
from .notion_client import NotionClient

LOGGER = logging.getLogger("sla_sync.pipeline")


def _property_value(page: Dict[str, Any], name: str, *keys: str) -> Any:
    value: Any = (page.get("properties") or {}).get(name)
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value or None


def build_records(
    pages: Iterable[Dict[str, Any]],
    properties: PropertiesConfig,
) -> List[PageRecord]:
    records: List[PageRecord] = []
    for page in pages:
        records.append(
            PageRecord(
                page_id=page["id"],
                status=_property_value(page, properties.status, "status", "name"),
                due=_property_value(page, properties.due, "date", "start"),
                sla=_property_value(page, properties.sla, "select", "name"),
            )
        )
    return records


def parse_due(value: str, tz: tzinfo) -> datetime:
    """Parse a Notion ``date.start`` value into an aware datetime in ``tz``.

    Plain dates become local midnight. Date-times without an offset are read as local
    time; those with an offset are converted.
    """

    text = value.strip()
    try:
        day = date.fromisoformat(text)
    except ValueError:
        pass
    else:
        return datetime(day.year, day.month, day.day, tzinfo=tz)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Unrecognized due date '{value}'") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _localize(moment: datetime, tz: tzinfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def classify(
    status: Optional[str],
    due: Optional[datetime],
    now: datetime,
    *,
    done_status: str,
    tz: tzinfo,
    at_risk_hours: float = 48,
) -> Optional[SLAStatus]:
    """Return the SLA a page should carry, or ``None`` when it is no longer tracked."""

    if status == done_status:
        return None
    if due is None:
        return SLAStatus.AT_RISK

    local_now = _localize(now, tz)
    local_due = _localize(due, tz)
    start_of_today = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    if local_due < start_of_today:
        return SLAStatus.BREACHED

    # Same-zone subtraction is wall-clock; elapsed hours need absolute time.
    hours_left = (local_due.timestamp() - local_now.timestamp()) / 3600
    if hours_left <= at_risk_hours:
        return SLAStatus.AT_RISK
    return SLAStatus.ON_TIME


def label_for(status: SLAStatus, labels: LabelsConfig) -> str:
    if status is SLAStatus.ON_TIME:
        return labels.on_time
    if status is SLAStatus.AT_RISK:
        return labels.at_risk
    return labels.breached


def target_label(record: PageRecord, config: AppConfig, now: datetime) -> Optional[str]:
    tz = config.tzinfo
    due = parse_due(record.due, tz) if record.due else None
    status = classify(
        record.status,
        due,
        now,
        done_status=config.done_status,
        tz=tz,
        at_risk_hours=config.at_risk_hours,
    )
    if status is None:
        return None
    return label_for(status, config.labels)


def plan_updates(
    records: Sequence[PageRecord],
    config: AppConfig,
    now: datetime,
    summary: SyncSummary | None = None,
) -> Iterator[PlannedUpdate]:
    """Yield the writes needed to bring each record's SLA in line, in record order."""

    for record in records:
        label = target_label(record, config, now)
        if label is None:
            LOGGER.debug("Page %s has status '%s'; not tracked", record.page_id, record.status)
            if summary is not None:
                summary.skipped += 1
            continue
        if label == record.sla:
            LOGGER.debug("Page %s already marked '%s'", record.page_id, label)
            if summary is not None:
                summary.unchanged += 1
            continue
        yield PlannedUpdate(page_id=record.page_id, label=label, previous=record.sla)


def _query_filter(config: AppConfig) -> Dict[str, Any] | None:
    if not config.notion.exclude_done_in_query:
        return None
    return {
        "property": config.properties.status,
        "status": {"does_not_equal": config.done_status},
    }


def synchronize(
    config: AppConfig,
    client: NotionClient,
    *,
    now: datetime | None = None,
    dry_run: bool = False,
) -> SyncSummary:
    """Fetch all pages, classify them and write back every SLA that changed.

    The first failing write propagates; updates already applied stay in place.
    """

    tz = config.tzinfo
    current = _localize(now, tz) if now is not None else datetime.now(tz)

    LOGGER.info("Fetching pages from Notion database %s...", config.notion.database_id)
    pages = client.list_all(config.notion.database_id, query_filter=_query_filter(config))
    records = build_records(pages, config.properties)

    summary = SyncSummary(fetched=len(records), dry_run=dry_run)
    for update in plan_updates(records, config, current, summary):
        if dry_run:
            LOGGER.info(
                "Dry run: would set page %s SLA '%s' -> '%s'",
                update.page_id,
                update.previous,
                update.label,
            )
            summary.updated += 1
            continue

        LOGGER.info(
            "Updating page %s SLA '%s' -> '%s'",
            update.page_id,
            update.previous,
            update.label,
        )
        client.update_label(update.page_id, config.properties.sla, update.label)
        summary.updated += 1
        time.sleep(config.write_delay_seconds)

    return summary
