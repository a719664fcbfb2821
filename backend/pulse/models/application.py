"""
Application model — the per-tenant container that owns events and a key.

user_id is UNIQUE: a user has at most one application, and registration
upserts on it.
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from pulse.core.database import Base


class Application(Base):
    """One tenant's application — the isolation boundary for events."""

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Application id={self.id!s:.8} name={self.name!r}>"
