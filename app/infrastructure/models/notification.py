"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_status_scheduled_at", "status", "scheduled_at"),
        Index("ix_notification_user_status", "user_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(120), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    channels = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="pending")
    scheduled_at = Column(DateTime(), nullable=True)
    sent_at = Column(DateTime(), nullable=True)
    read_at = Column(DateTime(), nullable=True)
    # Set while a dispatch is sending the notification; cleared when it finishes.
    dispatch_claimed_at = Column(DateTime(), nullable=True)
    created_at = Column(
        DateTime(), nullable=False, default=now_in_app_naive_datetime, index=True
    )
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)


__all__ = ["NotificationModel"]
