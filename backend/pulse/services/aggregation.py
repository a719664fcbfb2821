"""
Aggregation read paths over analytics_events.

Both queries are scoped to one application_id — aggregations never cross
applications.

event summary:
  SELECT COUNT(*), COUNT(DISTINCT user_id), device
  FROM analytics_events
  WHERE application_id = ? AND event_name = ? [AND timestamp >= ?] [AND timestamp <= ?]
  GROUP BY device

  Folded in Python:
    count       = Σ per-device counts
    uniqueUsers = MAX of per-device distinct users
    deviceData  = {device: count} for non-null devices

  uniqueUsers is an approximation: a user seen on two devices is counted
  once per device group, and the max of the groups can under-count the
  true distinct total.

user profile:
  SELECT COUNT(*) AS total_events, metadata, ip_address
  WHERE application_id = ? AND user_id = ?
  GROUP BY metadata, ip_address ORDER BY total_events DESC LIMIT 1
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import distinct, func, select

from pulse.core.store import Store
from pulse.models.event import AnalyticsEvent

logger = logging.getLogger(__name__)


def fold_device_rows(event: str, rows: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Fold per-device aggregate rows into the summary shape.

    Counts may arrive as strings (some drivers return COUNT as text or
    NUMERIC) — they are coerced to int.
    """
    total = 0
    unique_users = 0
    device_data: dict[str, int] = {}

    for row in rows:
        count = int(row["count"])
        total += count
        unique_users = max(unique_users, int(row["unique_users"]))
        if row.get("device"):
            device_data[row["device"]] = count

    return {
        "event": event,
        "count": total,
        "unique_users": unique_users,
        "device_data": device_data,
    }


async def summarize_event(
    store: Store,
    application_id: uuid.UUID,
    event: str,
    start: datetime.datetime | None = None,
    end: datetime.datetime | None = None,
) -> dict[str, Any]:
    """Per-device count / unique-user summary for one event name."""
    conditions = [
        AnalyticsEvent.event_name == event,
        AnalyticsEvent.application_id == application_id,
    ]
    if start is not None:
        conditions.append(AnalyticsEvent.timestamp >= start)
    if end is not None:
        conditions.append(AnalyticsEvent.timestamp <= end)

    stmt = (
        select(
            func.count().label("count"),
            func.count(distinct(AnalyticsEvent.user_id)).label("unique_users"),
            AnalyticsEvent.device,
        )
        .where(*conditions)
        .group_by(AnalyticsEvent.device)
    )
    rows = (await store.execute(stmt)).rows
    return fold_device_rows(event, rows)


async def top_user_cluster(
    store: Store,
    application_id: uuid.UUID,
    user_id: str,
) -> dict[str, Any] | None:
    """
    The busiest (metadata, ip_address) group for one end-user.

    Returns None when the user has no events in this application
    (caller returns 404). Ties are broken by the store.
    """
    total_events = func.count().label("total_events")
    stmt = (
        select(
            total_events,
            AnalyticsEvent.metadata_.label("metadata"),
            AnalyticsEvent.ip_address,
        )
        .where(
            AnalyticsEvent.user_id == user_id,
            AnalyticsEvent.application_id == application_id,
        )
        .group_by(AnalyticsEvent.metadata_, AnalyticsEvent.ip_address)
        .order_by(total_events.desc())
        .limit(1)
    )
    row = (await store.execute(stmt)).first()
    if row is None:
        return None

    meta = row.get("metadata") or {}
    return {
        "user_id": user_id,
        "total_events": int(row["total_events"]),
        "device_details": {
            "browser": meta.get("browser"),
            "os": meta.get("os"),
        },
        "ip_address": row.get("ip_address"),
    }
