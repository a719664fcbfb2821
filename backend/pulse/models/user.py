"""
User model — one tenant, identified by their Google subject id.

Users are created on first successful registration and keyed by
google_auth_id; re-registering updates email/name in place.
"""

import uuid
import datetime

from sqlalchemy import DateTime, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from pulse.core.database import Base


class User(Base):
    """A tenant account backed by a Google identity."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    google_auth_id: Mapped[str] = mapped_column(
        Text, nullable=False, unique=True,
    )
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id!s:.8} email={self.email!r}>"
