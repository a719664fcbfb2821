"""
FastAPI dependencies for the two authentication planes.

Data plane (x-api-key):
  require_api_key → authenticate() → KeyContext, or ApiError carrying
  the rejection's status/body (401 missing/unknown, 403 revoked/expired).

Control plane (Authorization: Bearer <google id_token>):
  require_identity → VerifiedIdentity
    • header missing or not "Bearer <token>"  → 400
    • token fails verification               → 401

Both reject BEFORE any handler logic runs. A missing credential never
reaches the store.

Security:
  • Raw keys and tokens are NEVER logged
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, status

from pulse.auth.api_keys import KeyContext, KeyRejection, authenticate
from pulse.auth.identity import (
    GoogleIdentityVerifier,
    VerificationFailed,
    VerifiedIdentity,
    get_identity_verifier,
)
from pulse.core.errors import ApiError
from pulse.core.store import Store, StoreError, get_store

logger = logging.getLogger(__name__)


async def require_api_key(
    x_api_key: str | None = Header(default=None, alias="x-api-key"),
    store: Store = Depends(get_store),
) -> KeyContext:
    """
    FastAPI dependency — resolves the x-api-key header to a KeyContext.

    Usage in routers:
        ApiKey = Annotated[KeyContext, Depends(require_api_key)]
    """
    try:
        outcome = await authenticate(store, x_api_key)
    except StoreError:
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            message="Failed to validate API key",
        )

    if isinstance(outcome, KeyRejection):
        logger.info("API key rejected: %s", outcome.kind.value)
        raise ApiError(outcome.status_code, outcome.error, **outcome.extra())

    return outcome


async def require_identity(
    authorization: str | None = Header(default=None, alias="Authorization"),
    verifier: GoogleIdentityVerifier = Depends(get_identity_verifier),
) -> VerifiedIdentity:
    """
    FastAPI dependency — verifies the Bearer id_token of a tenant.

    Usage in routers:
        Identity = Annotated[VerifiedIdentity, Depends(require_identity)]
    """

    # ── 1. Extract token ────────────────────────────────────
    if not authorization or not authorization.startswith("Bearer "):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Authorization header with Bearer token is required",
        )

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Authorization header with Bearer token is required",
        )

    # ── 2. Verify ───────────────────────────────────────────
    try:
        return await verifier.verify(token)
    except VerificationFailed:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid Google token")
