from __future__ import annotations
from datetime import datetime, timezone

from sqlalchemy import String, Index, func, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from appdoki.db.database import Base


class User(Base):
    """User account table. The primary key is the identity provider's subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(
        String(255), default="", server_default="", nullable=False
    )
    email: Mapped[str] = mapped_column(
        String(255), default="", server_default="", nullable=False
    )
    picture: Mapped[str] = mapped_column(
        String(500), default="", server_default="", nullable=False
    )  # Profile picture URL
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("idx_users_email", "email"),)
