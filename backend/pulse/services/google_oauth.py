"""
Google OAuth code-flow helper.

Lets a tenant obtain an id_token without writing any client code:
  1. /auth/google           → redirect to Google's consent screen
  2. /auth/google/callback  → exchange the code for tokens (this module)
  3. Use the returned id_token as `Authorization: Bearer` on /api/auth/*

Configuration:
  GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET — server-side only
  GOOGLE_CALLBACK_URL                     — must match the console entry
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from pulse.core.config import settings

logger = logging.getLogger(__name__)

_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_SCOPES = "openid profile email"


def build_consent_url() -> str:
    """URL of Google's consent screen for this client."""
    query = urlencode(
        {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.GOOGLE_CALLBACK_URL,
            "response_type": "code",
            "scope": _SCOPES,
        }
    )
    return f"{_GOOGLE_AUTH_URL}?{query}"


async def exchange_code(code: str) -> dict[str, Any]:
    """
    Exchange an authorization code for Google tokens.

    Returns:
        Dict with keys: id_token, access_token, expires_in.

    Raises:
        RuntimeError: If Google rejects the exchange or is unreachable.
    """
    form = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "client_secret": settings.GOOGLE_CLIENT_SECRET,
        "code": code,
        "redirect_uri": settings.GOOGLE_CALLBACK_URL,
        "grant_type": "authorization_code",
    }

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            response = await client.post(_GOOGLE_TOKEN_URL, data=form)
    except httpx.HTTPError as exc:
        logger.error("Google token endpoint unreachable: %s", exc)
        raise RuntimeError("Could not reach Google token endpoint") from exc

    if response.status_code != 200:
        logger.error(
            "Google OAuth error: status=%d body=%s redirect_uri=%s",
            response.status_code,
            response.text[:500],
            settings.GOOGLE_CALLBACK_URL,
        )
        raise RuntimeError("Google rejected the authorization code")

    try:
        data = response.json()
        return {
            "id_token": data["id_token"],
            "access_token": data.get("access_token"),
            "expires_in": data.get("expires_in"),
        }
    except (KeyError, ValueError) as exc:
        logger.error("Unexpected Google token response: %s", exc)
        raise RuntimeError("Could not parse Google token response") from exc
