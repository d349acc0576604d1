"""Operator access rows.

Only the columns this service reads are mapped. The permission and
assignment columns hold JSON text written by other systems, so they are
stored as plain text and parsed defensively by the resolver.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserAccess(Base):
    __tablename__ = "user_access"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    client_permissions: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_client_ids: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
