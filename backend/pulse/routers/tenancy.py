"""
Tenant router — API-key lifecycle for registered users.

Every endpoint requires `Authorization: Bearer <Google id_token>`:
  missing / malformed header → 400, unverifiable token → 401.

Endpoints:
  POST /api/auth/register            — upsert user + app, issue key
  GET  /api/auth/api-key             — list active keys
  POST /api/auth/revoke-api-key      — revoke the application's key
  POST /api/auth/regenerate-api-key  — rotate the application's key
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status

from pulse.auth.dependencies import require_identity
from pulse.auth.identity import VerifiedIdentity
from pulse.core.errors import ApiError
from pulse.core.store import Store, StoreError, get_store
from pulse.schemas.tenancy import (
    ApiKeyListResponse,
    ApiKeyOut,
    ApplicationOut,
    KeyOwnerOut,
    MessageResponse,
    RegenerateResponse,
    RegisterRequest,
    RegisterResponse,
    UserOut,
)
from pulse.services.tenancy import (
    find_application_id,
    find_user_id,
    list_active_keys,
    register_tenant,
    revoke_application_key,
    rotate_application_key,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tenancy"])

# Type aliases for cleaner signatures
StoreDep = Annotated[Store, Depends(get_store)]
Identity = Annotated[VerifiedIdentity, Depends(require_identity)]

_USER_NOT_FOUND = "User not found. Please register first."
_APP_NOT_FOUND = "Application not found. Please create an application first."


async def _resolve_user(store: Store, identity: VerifiedIdentity) -> uuid.UUID:
    user_id = await find_user_id(store, identity.subject_id)
    if user_id is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, _USER_NOT_FOUND)
    return user_id


async def _resolve_application(store: Store, identity: VerifiedIdentity) -> uuid.UUID:
    user_id = await _resolve_user(store, identity)
    application_id = await find_application_id(store, user_id)
    if application_id is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, _APP_NOT_FOUND)
    return application_id


# ── 1. Register ─────────────────────────────────────────────
@router.post(
    "/register",
    response_model=RegisterResponse,
    summary="Register (or re-register) and receive an API key",
    description=(
        "Idempotent in identity: the same Google account updates in place. "
        "Every call rotates the API key; prefer regenerate-api-key for rotation."
    ),
)
async def register(
    identity: Identity,
    store: StoreDep,
    payload: RegisterRequest | None = None,
) -> RegisterResponse:
    payload = payload or RegisterRequest()

    try:
        result = await register_tenant(store, identity, payload.app_name, payload.domain)
    except StoreError as exc:
        # Caller is authenticated, so the upstream reason is echoed back.
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Registration failed",
            details=str(exc),
        )

    return RegisterResponse(
        user=UserOut(
            id=result["user_id"],
            google_id=identity.subject_id,
            email=identity.email,
            name=identity.name,
        ),
        application=ApplicationOut.model_validate(result["application"]),
        api_key=result["api_key"],
    )


# ── 2. List keys ────────────────────────────────────────────
@router.get(
    "/api-key",
    response_model=ApiKeyListResponse,
    summary="List the caller's active API keys",
)
async def list_api_keys(identity: Identity, store: StoreDep) -> ApiKeyListResponse:
    try:
        user_id = await _resolve_user(store, identity)
        rows = await list_active_keys(store, user_id)
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to retrieve API keys")

    if not rows:
        raise ApiError(status.HTTP_404_NOT_FOUND, "No API keys found for this user")

    return ApiKeyListResponse(
        user=KeyOwnerOut(google_id=identity.subject_id, email=identity.email),
        api_keys=[ApiKeyOut.model_validate(row) for row in rows],
    )


# ── 3. Revoke ───────────────────────────────────────────────
@router.post(
    "/revoke-api-key",
    response_model=MessageResponse,
    summary="Revoke the caller's API key",
)
async def revoke_api_key(identity: Identity, store: StoreDep) -> MessageResponse:
    try:
        application_id = await _resolve_application(store, identity)
        revoked = await revoke_application_key(store, application_id)
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to revoke API key")

    if not revoked:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            "API key not found. Please generate an API key first.",
        )

    return MessageResponse(message="API key revoked successfully")


# ── 4. Regenerate ───────────────────────────────────────────
@router.post(
    "/regenerate-api-key",
    response_model=RegenerateResponse,
    summary="Replace the caller's API key with a fresh one",
    description="The previous key stops resolving immediately.",
)
async def regenerate_api_key(identity: Identity, store: StoreDep) -> RegenerateResponse:
    try:
        application_id = await _resolve_application(store, identity)
        issued = await rotate_application_key(store, application_id)
    except StoreError:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to regenerate API key")

    return RegenerateResponse(
        message="API key regenerated successfully",
        api_key=issued["api_key"],
        created_at=issued["created_at"],
        expires_at=issued["expires_at"],
    )
