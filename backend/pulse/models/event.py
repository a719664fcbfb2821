"""
SQLAlchemy model for the `analytics_events` table.

Each row is one occurrence of a named action, scoped to one application.
The table is append-only — nothing updates or deletes rows.

Design notes:
  • user_id is the CALLER's end-user id, not a users.id — separate namespace.
  • metadata_ is JSONB on PostgreSQL (plain JSON elsewhere) so that
    user-stats can GROUP BY it.
  • Composite indexes match the two read paths: per-event summary and
    per-user profile.
"""

import datetime
import uuid

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from pulse.core.database import Base


class AnalyticsEvent(Base):
    """One analytics event."""

    __tablename__ = "analytics_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_name: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Caller-supplied context ─────────────────────────────
    user_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    device: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Event time — client-supplied or defaulted to now by the ingestor
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Column named `metadata_` to avoid clashing with Base.metadata;
    # maps to DB column `metadata`.
    metadata_: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_analytics_events_app_event", "application_id", "event_name"),
        Index("ix_analytics_events_app_user", "application_id", "user_id"),
        Index("ix_analytics_events_timestamp", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<AnalyticsEvent id={self.id!s:.8} event={self.event_name!r} "
            f"app={self.application_id!s:.8}>"
        )
