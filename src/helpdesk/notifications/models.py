"""
Notification Models
===================

SQLAlchemy ORM model for in-app notifications.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.infrastructure.database import Base, UTCDateTime


class NotificationModel(Base):
    """
    Database model for a user notification.

    Maps to the 'notifications' table.
    """
    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    data: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("notification_user_read_idx", "user_id", "read"),
        Index("notification_org_idx", "organization_id"),
    )

    def to_payload(self) -> dict:
        """JSON-safe representation pushed to live clients."""
        return {
            "id": str(self.id),
            "userId": self.user_id,
            "organizationId": self.organization_id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "read": self.read,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
