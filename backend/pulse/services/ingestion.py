"""
Event ingestion — one POST, one row.

The router validates the envelope (key, event name, timestamp); this module
only persists. Events are append-only: no batching, no deduplication, no
updates.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Any

from pulse.core.store import Store
from pulse.models.event import AnalyticsEvent

logger = logging.getLogger(__name__)


async def record_event(
    store: Store,
    application_id: uuid.UUID,
    event_name: str,
    event_time: datetime.datetime,
    *,
    user_id: str | None = None,
    url: str | None = None,
    referrer: str | None = None,
    device: str | None = None,
    ip_address: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Insert one analytics event scoped to `application_id`.

    Returns:
        Dict with keys: id, timestamp — as recorded by the store.
    """
    stmt = (
        store.insert(AnalyticsEvent)
        .values(
            application_id=application_id,
            event_name=event_name,
            user_id=user_id,
            url=url,
            referrer=referrer,
            device=device,
            ip_address=ip_address,
            timestamp=event_time,
            metadata_=metadata,
        )
        .returning(AnalyticsEvent.id, AnalyticsEvent.timestamp)
    )
    row = (await store.execute(stmt)).rows[0]

    logger.debug("Recorded event %s (%s) for application %s", row["id"], event_name, application_id)
    return row
