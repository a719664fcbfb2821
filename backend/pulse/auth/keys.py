"""
API key generation.

Security notes:
  • 32 bytes from the OS CSPRNG rendered as lowercase hex — 64 chars,
    256 bits. High entropy means exact-match lookup is safe.
  • No prefix: the key is an opaque secret to clients.
"""

import datetime
import secrets

from pulse.core.config import settings

KEY_BYTES = 32


def generate_api_key() -> str:
    """Return a fresh 64-character hexadecimal API key."""
    return secrets.token_hex(KEY_BYTES)


def key_expiry(now: datetime.datetime) -> datetime.datetime:
    """Expiry instant for a key issued at `now`."""
    return now + datetime.timedelta(days=settings.API_KEY_LIFETIME_DAYS)
