"""
Pydantic v2 response schemas for analytics query endpoints.

Field names are snake_case in Python; the wire format is camelCase via
serialization aliases (FastAPI serializes response models by alias).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventSummaryOut(BaseModel):
    """Aggregate for one event name within one application."""

    model_config = ConfigDict(populate_by_name=True)

    event: str
    count: int
    unique_users: int = Field(serialization_alias="uniqueUsers")
    device_data: dict[str, int] = Field(
        default_factory=dict,
        serialization_alias="deviceData",
    )


class DeviceDetails(BaseModel):
    """Echoes the caller's metadata values unchanged; they need not be strings."""

    browser: Any = None
    os: Any = None


class UserStatsOut(BaseModel):
    """Busiest (metadata, ip_address) cluster for one end-user."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(serialization_alias="userId")
    total_events: int = Field(serialization_alias="totalEvents")
    device_details: DeviceDetails = Field(serialization_alias="deviceDetails")
    ip_address: str | None = Field(default=None, serialization_alias="ipAddress")
