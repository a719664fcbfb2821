"""
Google ID-token verification.

Verifies the RS256 signature against Google's published JWKS, then checks
audience (our OAuth client id), issuer and expiry.

Flow:
  1. Read `kid` from the unverified token header
  2. Resolve it against the cached key set
  3. jwt.decode() with audience + required claims
  4. Check issuer is Google

Key cache:
  The JWKS is kept for the `Cache-Control: max-age` Google sends (an hour
  when absent). An unknown `kid` may trigger a refetch, but fetches are
  spaced at least `min_refresh_interval` apart, so unauthenticated callers
  cannot drive outbound traffic by sending made-up key ids.

Every failure — expired, bad signature, wrong audience, JWKS unreachable,
garbage token — collapses to VerificationFailed. Callers never branch on
the cause; the reason is logged for operators only.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx
import jwt

from pulse.core.config import settings

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
MIN_REFRESH_INTERVAL = 60.0
DEFAULT_KEY_TTL = 3600.0

_MAX_AGE = re.compile(r"max-age=(\d+)")


class VerificationFailed(Exception):
    """Raised when an identity token cannot be verified."""


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    """Claims extracted from a verified token.

    Attributes:
        subject_id: Google's stable `sub` for the account.
        email:      Account email (may be absent for some scopes).
        name:       Display name (may be absent).
    """

    subject_id: str
    email: str | None = None
    name: str | None = None


class GoogleIdentityVerifier:
    """Verifies Google-issued ID tokens for one OAuth client."""

    def __init__(
        self,
        client_id: str,
        certs_url: str = GOOGLE_CERTS_URL,
        timeout: float = 10.0,
        min_refresh_interval: float = MIN_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = client_id
        self._certs_url = certs_url
        self._timeout = timeout
        self._min_refresh_interval = min_refresh_interval
        self._clock = clock
        self._keys: dict[str, jwt.PyJWK] = {}
        self._keys_expire_at = 0.0
        self._last_fetch: float | None = None

    def _may_refetch(self, now: float) -> bool:
        return self._last_fetch is None or now - self._last_fetch >= self._min_refresh_interval

    async def _refresh_keys(self, now: float) -> None:
        # Recorded before the request so failed fetches are throttled too.
        self._last_fetch = now
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(self._certs_url)
        response.raise_for_status()

        jwk_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in jwk_set.keys if key.key_id}
        self._keys_expire_at = now + _cache_ttl(response.headers.get("cache-control"))
        logger.debug("Loaded %d Google signing keys", len(self._keys))

    async def _signing_key(self, kid: str | None) -> jwt.PyJWK:
        if not kid:
            raise VerificationFailed("Token header has no kid")

        now = self._clock()
        stale = now >= self._keys_expire_at
        if (stale or kid not in self._keys) and self._may_refetch(now):
            await self._refresh_keys(now)

        key = self._keys.get(kid)
        if key is None:
            raise VerificationFailed(f"Unknown signing key {kid!r}")
        return key

    async def verify(self, token: str) -> VerifiedIdentity:
        """
        Verify `token` and return its identity claims.

        Raises:
            VerificationFailed: On any verification problem.
        """
        if not self._client_id:
            logger.error("GOOGLE_CLIENT_ID is not configured; rejecting token")
            raise VerificationFailed("Identity provider is not configured")

        try:
            header = jwt.get_unverified_header(token)
            key = await self._signing_key(header.get("kid"))
            claims = jwt.decode(
                token,
                key.key,
                algorithms=["RS256"],
                audience=self._client_id,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
        except VerificationFailed as exc:
            logger.info("Identity token rejected: %s", exc)
            raise
        except (jwt.PyJWTError, httpx.HTTPError, ValueError) as exc:
            logger.info("Identity token rejected: %s", exc)
            raise VerificationFailed(str(exc)) from exc

        if claims.get("iss") not in GOOGLE_ISSUERS:
            logger.info("Identity token rejected: issuer %r", claims.get("iss"))
            raise VerificationFailed("Unexpected token issuer")

        return VerifiedIdentity(
            subject_id=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
        )


def _cache_ttl(cache_control: str | None) -> float:
    """Seconds the certs response may be cached, from its max-age."""
    match = _MAX_AGE.search(cache_control or "")
    return float(match.group(1)) if match else DEFAULT_KEY_TTL


identity_verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)


def get_identity_verifier() -> GoogleIdentityVerifier:
    """FastAPI dependency — overridden in tests with a stub verifier."""
    return identity_verifier
