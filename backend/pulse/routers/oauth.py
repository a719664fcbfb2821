"""
Login-flow helper — lets a tenant obtain a Google id_token by browser.

  GET /auth/google           → redirect to Google's consent screen
  GET /auth/google/callback  → exchange ?code= for tokens, return them
  GET /auth/logout           → back to the login page

Failures redirect to /login rather than rendering an error body; the
page is served by the frontend.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from pulse.services.google_oauth import build_consent_url, exchange_code

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Login"])


@router.get("/google", summary="Start Google sign-in")
async def google_login() -> RedirectResponse:
    return RedirectResponse(build_consent_url())


@router.get("/google/callback", summary="Google OAuth redirect target")
async def google_callback(code: str | None = None):
    """Returns the id_token to use as `Authorization: Bearer` on /api/auth/*."""
    if not code:
        return RedirectResponse("/login?error=no_code")

    try:
        tokens = await exchange_code(code)
    except RuntimeError:
        logger.exception("Google OAuth callback failed")
        return RedirectResponse("/login")

    return {
        "success": True,
        "message": "Use this id_token in /register endpoint",
        **tokens,
    }


@router.get("/logout", summary="Sign out")
async def logout() -> RedirectResponse:
    return RedirectResponse("/login")
