"""
API key model — the sole credential for data-plane calls.

Security notes:
  • The key is a 64-char hex secret stored as-is: tenants list their
    active keys through GET /api/auth/api-key.
  • application_id is UNIQUE — one key slot per application. Regenerate
    overwrites the slot, so an old key string stops resolving at all.
  • is_revoked allows revocation without deletion; expires_at bounds
    validity (one year from issuance by default).
"""

import uuid
import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Text, Uuid, false
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from pulse.core.database import Base


class APIKey(Base):
    """The API key bound to an application."""

    __tablename__ = "api_keys"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    api_key: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )
    is_revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<APIKey id={self.id!s:.8} app={self.application_id!s:.8} "
            f"revoked={self.is_revoked}>"
        )
