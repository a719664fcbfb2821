"""
API key authentication for the data plane.

authenticate() returns either a KeyContext or a KeyRejection — never
raises for a bad key. The HTTP status and body of a rejection are pure
functions of its kind, so every data-plane endpoint rejects identically.

Check order (first failure wins):
  1. missing  — no x-api-key header / empty value     → 401
  2. unknown  — no api_keys row matches exactly         → 401
  3. revoked  — is_revoked = true                       → 403 KEY_REVOKED
  4. expired  — expires_at < now                        → 403 KEY_EXPIRED

Revoked is checked before expired: a revoked-and-expired key reports
KEY_REVOKED.
"""

from __future__ import annotations

import datetime
import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import status
from sqlalchemy import select

from pulse.common.datetime_utils import as_utc, utcnow
from pulse.core.store import Store
from pulse.models.api_key import APIKey

logger = logging.getLogger(__name__)

_REGENERATE_HINT = "Please regenerate a new key using the /api/auth/regenerate-api-key endpoint."


class RejectionKind(str, enum.Enum):
    MISSING = "missing"
    UNKNOWN = "unknown"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class KeyContext:
    """Authenticated data-plane context — the application a key is bound to."""

    application_id: uuid.UUID


@dataclass(frozen=True, slots=True)
class KeyRejection:
    """Why a presented key is not authoritative."""

    kind: RejectionKind
    expires_at: datetime.datetime | None = None

    @property
    def status_code(self) -> int:
        if self.kind in (RejectionKind.MISSING, RejectionKind.UNKNOWN):
            return status.HTTP_401_UNAUTHORIZED
        return status.HTTP_403_FORBIDDEN

    @property
    def error(self) -> str:
        return _ERRORS[self.kind]

    def extra(self) -> dict[str, Any]:
        """Machine-readable fields that accompany `error` in the response."""
        if self.kind is RejectionKind.REVOKED:
            return {
                "message": f"Your API key has been revoked. {_REGENERATE_HINT}",
                "code": "KEY_REVOKED",
            }
        if self.kind is RejectionKind.EXPIRED:
            return {
                "message": f"Your API key has expired. {_REGENERATE_HINT}",
                "expired_at": self.expires_at,
                "code": "KEY_EXPIRED",
            }
        return {}


_ERRORS = {
    RejectionKind.MISSING: "API key required in x-api-key header",
    RejectionKind.UNKNOWN: "Invalid API key",
    RejectionKind.REVOKED: "API key has been revoked",
    RejectionKind.EXPIRED: "API key has expired",
}


async def authenticate(
    store: Store,
    header_key: str | None,
    now: datetime.datetime | None = None,
) -> KeyContext | KeyRejection:
    """Resolve a presented API key to its application, or say why not."""

    # ── 1. Presence ─────────────────────────────────────────
    if not header_key:
        return KeyRejection(RejectionKind.MISSING)

    # ── 2. Exact-match lookup ───────────────────────────────
    stmt = select(
        APIKey.application_id,
        APIKey.is_revoked,
        APIKey.expires_at,
    ).where(APIKey.api_key == header_key)
    row = (await store.execute(stmt)).first()

    if row is None:
        return KeyRejection(RejectionKind.UNKNOWN)

    expires_at = row["expires_at"]

    # ── 3. Revocation (wins over expiry) ────────────────────
    if row["is_revoked"]:
        return KeyRejection(RejectionKind.REVOKED, expires_at=expires_at)

    # ── 4. Expiry ───────────────────────────────────────────
    if expires_at is not None:
        now = now or utcnow()
        if as_utc(expires_at) < now:
            return KeyRejection(RejectionKind.EXPIRED, expires_at=expires_at)

    return KeyContext(application_id=row["application_id"])
