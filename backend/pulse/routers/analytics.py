"""
Analytics router — the data plane, authenticated by `x-api-key`.

Every endpoint resolves the key to an application BEFORE touching the
payload, and every read and write is scoped to that application.

Endpoints:
  POST /api/analytics/collect        — record one event (201)
  GET  /api/analytics/event-summary  — count / unique users / per-device split
  GET  /api/analytics/user-stats     — busiest device+IP cluster for an end-user
"""

import datetime
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from pulse.auth.api_keys import KeyContext
from pulse.auth.dependencies import require_api_key
from pulse.common.datetime_utils import parse_instant, utcnow
from pulse.core.errors import ApiError
from pulse.core.store import Store, StoreError, get_store
from pulse.schemas.analytics import EventSummaryOut, UserStatsOut
from pulse.schemas.events import CollectEventRequest, CollectEventResponse
from pulse.services.aggregation import summarize_event, top_user_cluster
from pulse.services.ingestion import record_event

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])

# Type aliases for cleaner signatures
StoreDep = Annotated[Store, Depends(get_store)]
ApiKey = Annotated[KeyContext, Depends(require_api_key)]


def _parse_bound(value: str | None, name: str) -> datetime.datetime | None:
    """Query-string date bound: ISO-8601, or all digits for epoch milliseconds."""
    if value is None:
        return None
    raw: str | int = int(value) if value.isascii() and value.isdigit() else value
    try:
        return parse_instant(raw)
    except ValueError:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Invalid {name}")


# ── 1. Collect ──────────────────────────────────────────────
@router.post(
    "/collect",
    response_model=CollectEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a single analytics event",
    description=(
        "Persists one event for the application bound to the API key. "
        "`timestamp` accepts ISO-8601 or epoch milliseconds and defaults to now."
    ),
)
async def collect_event(
    payload: CollectEventRequest,
    auth: ApiKey,
    store: StoreDep,
) -> CollectEventResponse:
    """
    The application is never taken from the body — only from the key.
    """

    # ── 1. Event name ───────────────────────────────────────
    if not payload.event:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Event name required")

    # ── 2. Event time ───────────────────────────────────────
    if payload.timestamp is None:
        event_time = utcnow()
    else:
        try:
            event_time = parse_instant(payload.timestamp)
        except ValueError:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid timestamp")

    # ── 3. Persist ──────────────────────────────────────────
    try:
        row = await record_event(
            store,
            auth.application_id,
            payload.event,
            event_time,
            user_id=payload.user_id,
            url=payload.url,
            referrer=payload.referrer,
            device=payload.device,
            ip_address=payload.ip_address,
            metadata=payload.metadata,
        )
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to collect event")

    return CollectEventResponse(event_id=row["id"], recorded_at=row["timestamp"])


# ── 2. Event summary ────────────────────────────────────────
@router.get(
    "/event-summary",
    response_model=EventSummaryOut,
    summary="Totals for one event name",
    description=(
        "Total count, distinct users and per-device counts for `event`, "
        "optionally bounded by `startDate` / `endDate` (inclusive). "
        "An event with no rows returns zeros."
    ),
)
async def get_event_summary(
    auth: ApiKey,
    store: StoreDep,
    event: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> EventSummaryOut:
    if not event:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Event name required")

    start = _parse_bound(start_date, "startDate")
    end = _parse_bound(end_date, "endDate")

    try:
        summary = await summarize_event(store, auth.application_id, event, start, end)
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get summary")

    return EventSummaryOut(**summary)


# ── 3. User stats ───────────────────────────────────────────
@router.get(
    "/user-stats",
    response_model=UserStatsOut,
    summary="Most frequent device and IP for one end-user",
    description=(
        "Groups the user's events by (metadata, ipAddress) and returns the "
        "largest group. 404 when the user has no events."
    ),
)
async def get_user_stats(
    auth: ApiKey,
    store: StoreDep,
    user_id: str | None = Query(default=None, alias="userId"),
) -> UserStatsOut:
    if not user_id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "userId required")

    try:
        cluster = await top_user_cluster(store, auth.application_id, user_id)
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to get user stats")

    if cluster is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, "No events found")

    return UserStatsOut(**cluster)
