"""
Pydantic v2 schemas for event ingestion.

Separation:
  • CollectEventRequest  — what the CLIENT sends. Every field is optional
    at the schema level; the router enforces `event` so that a missing
    name yields the documented 400 rather than a generic validation error.
  • CollectEventResponse — what the SERVER returns after persistence.

application_id is intentionally absent — it comes from the API key.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Request schema ──────────────────────────────────────────
class CollectEventRequest(BaseModel):
    """Payload accepted by POST /api/analytics/collect."""

    model_config = ConfigDict(populate_by_name=True)

    event: str | None = Field(
        default=None,
        examples=["button_click"],
        description="Event name (required).",
    )
    user_id: str | None = Field(
        default=None,
        examples=["user123"],
        description="Caller's end-user id (not a platform user).",
    )
    url: str | None = Field(default=None, examples=["https://example.com/pricing"])
    referrer: str | None = Field(default=None, examples=["https://google.com"])
    device: str | None = Field(default=None, examples=["mobile", "desktop"])
    ip_address: str | None = Field(
        default=None,
        alias="ipAddress",
        examples=["192.168.1.1"],
    )
    timestamp: str | float | None = Field(
        default=None,
        examples=["2024-02-20T12:00:00Z", 1708430400000],
        description="Event time: ISO-8601 string or epoch milliseconds. Defaults to now.",
    )
    metadata: dict[str, Any] | None = Field(
        default=None,
        examples=[{"browser": "Chrome", "os": "iOS"}],
        description="Arbitrary caller-defined document.",
    )


# ── Response schema ─────────────────────────────────────────
class CollectEventResponse(BaseModel):
    """Acknowledgement returned with 201 Created."""

    success: Literal[True] = True
    event_id: uuid.UUID
    recorded_at: datetime
