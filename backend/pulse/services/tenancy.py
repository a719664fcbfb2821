"""
Tenant and API-key lifecycle.

Registration is an idempotent merge keyed by the Google subject id — the
service never asks "does this user exist?", it declares the desired state:

  1. UPSERT users        ON CONFLICT (google_auth_id) → refresh email, name
  2. UPSERT applications ON CONFLICT (user_id)        → refresh name, domain
  3. UPSERT api_keys     ON CONFLICT (application_id) → fresh key, un-revoked

Each statement runs on its own connection (see pulse.core.store), so a
crash between steps can leave a user without an application or an
application without a key. Re-registering heals both.

Rotation overwrites the single key slot per application — the previous
key string stops resolving entirely.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select, update

from pulse.auth.identity import VerifiedIdentity
from pulse.auth.keys import generate_api_key, key_expiry
from pulse.common.datetime_utils import utcnow
from pulse.core.store import Store
from pulse.models.api_key import APIKey
from pulse.models.application import Application
from pulse.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "My Application"


async def register_tenant(
    store: Store,
    identity: VerifiedIdentity,
    app_name: str | None,
    domain: str | None,
) -> dict[str, Any]:
    """
    Upsert user + application and issue a fresh API key.

    Returns:
        Dict with keys: user_id, application (row dict), api_key.
    """

    # ── 1. User ─────────────────────────────────────────────
    user_stmt = (
        store.insert(User)
        .values(
            google_auth_id=identity.subject_id,
            email=identity.email,
            name=identity.name,
        )
        .on_conflict_do_update(
            index_elements=["google_auth_id"],
            set_={"email": identity.email, "name": identity.name},
        )
        .returning(User.id)
    )
    user_id = (await store.execute(user_stmt)).rows[0]["id"]

    # ── 2. Application ──────────────────────────────────────
    name = app_name or DEFAULT_APP_NAME
    app_domain = domain or ""
    app_stmt = (
        store.insert(Application)
        .values(user_id=user_id, name=name, domain=app_domain)
        .on_conflict_do_update(
            index_elements=["user_id"],
            set_={"name": name, "domain": app_domain},
        )
        .returning(
            Application.id,
            Application.name,
            Application.domain,
            Application.created_at,
        )
    )
    application = (await store.execute(app_stmt)).rows[0]

    # ── 3. Key slot ─────────────────────────────────────────
    issued = await _write_key_slot(store, application["id"])

    logger.info("Registered user %s with application %s", user_id, application["id"])
    return {
        "user_id": user_id,
        "application": application,
        "api_key": issued["api_key"],
    }


async def find_user_id(store: Store, google_id: str) -> uuid.UUID | None:
    """Return users.id for a Google subject, or None if never registered."""
    stmt = select(User.id).where(User.google_auth_id == google_id)
    row = (await store.execute(stmt)).first()
    return row["id"] if row else None


async def find_application_id(store: Store, user_id: uuid.UUID) -> uuid.UUID | None:
    """Return the user's application id, or None."""
    stmt = select(Application.id).where(Application.user_id == user_id)
    row = (await store.execute(stmt)).first()
    return row["id"] if row else None


async def list_active_keys(store: Store, user_id: uuid.UUID) -> list[dict[str, Any]]:
    """Non-revoked keys across the user's applications, newest first."""
    stmt = (
        select(
            APIKey.api_key,
            APIKey.is_revoked,
            APIKey.expires_at,
            APIKey.created_at,
            Application.id.label("application_id"),
            Application.name.label("app_name"),
            Application.domain,
        )
        .join(Application, APIKey.application_id == Application.id)
        .where(
            Application.user_id == user_id,
            APIKey.is_revoked.is_(False),
        )
        .order_by(APIKey.created_at.desc())
    )
    return (await store.execute(stmt)).rows


async def revoke_application_key(store: Store, application_id: uuid.UUID) -> bool:
    """Flip is_revoked on the application's key. False if there was no key."""
    stmt = (
        update(APIKey)
        .where(APIKey.application_id == application_id)
        .values(is_revoked=True)
        .execution_options(synchronize_session=False)
    )
    result = await store.execute(stmt)
    if result.rowcount:
        logger.info("Revoked API key for application %s", application_id)
    return result.rowcount > 0


async def rotate_application_key(
    store: Store,
    application_id: uuid.UUID,
) -> dict[str, Any]:
    """
    Replace the application's key slot with a fresh, un-revoked key.

    Returns:
        Dict with keys: api_key, created_at, expires_at.
    """
    issued = await _write_key_slot(store, application_id)
    logger.info("Regenerated API key for application %s", application_id)
    return issued


# ── Internal helpers ────────────────────────────────────────

async def _write_key_slot(store: Store, application_id: uuid.UUID) -> dict[str, Any]:
    """Upsert the single api_keys row bound to an application.

    Returns the issued api_key/created_at/expires_at. The values written are
    authoritative; the RETURNING row, when present, reflects what the store
    recorded for them.
    """
    now = utcnow()
    fresh = {
        "api_key": generate_api_key(),
        "is_revoked": False,
        "expires_at": key_expiry(now),
        "created_at": now,
    }
    stmt = (
        store.insert(APIKey)
        .values(application_id=application_id, **fresh)
        .on_conflict_do_update(
            index_elements=["application_id"],
            set_=fresh,
        )
        .returning(APIKey.api_key, APIKey.created_at, APIKey.expires_at)
    )
    row = (await store.execute(stmt)).first()
    issued = {key: fresh[key] for key in ("api_key", "created_at", "expires_at")}
    if row:
        issued.update(row)
    return issued
