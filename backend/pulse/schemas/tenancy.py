"""
Pydantic v2 schemas for the tenant / key management plane.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Requests ────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    """Body of POST /api/auth/register. Both fields optional."""

    app_name: str | None = Field(default=None, examples=["My Storefront"])
    domain: str | None = Field(default=None, examples=["shop.example.com"])


# ── Responses ───────────────────────────────────────────────
class UserOut(BaseModel):
    id: uuid.UUID
    google_id: str
    email: str | None = None
    name: str | None = None


class ApplicationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    domain: str | None = None
    created_at: datetime | None = None


class RegisterResponse(BaseModel):
    success: Literal[True] = True
    user: UserOut
    application: ApplicationOut
    api_key: str


class KeyOwnerOut(BaseModel):
    google_id: str
    email: str | None = None


class ApiKeyOut(BaseModel):
    """One active key, joined to its application."""

    model_config = ConfigDict(from_attributes=True)

    api_key: str
    is_revoked: bool
    expires_at: datetime | None = None
    created_at: datetime | None = None
    application_id: uuid.UUID
    app_name: str
    domain: str | None = None


class ApiKeyListResponse(BaseModel):
    success: Literal[True] = True
    user: KeyOwnerOut
    api_keys: list[ApiKeyOut]


class MessageResponse(BaseModel):
    success: Literal[True] = True
    message: str


class RegenerateResponse(BaseModel):
    success: Literal[True] = True
    message: str
    api_key: str
    created_at: datetime | None = None
    expires_at: datetime | None = None
