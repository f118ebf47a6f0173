"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationPreferencesModel(Base):
    """Channel configuration and quiet hours of a single user."""

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("user.id"), nullable=False, unique=True, index=True
    )
    channels_by_type = Column(JSON, nullable=False, default=dict)
    email_enabled = Column(Boolean, nullable=False, default=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    quiet_hours_start = Column(String(5), nullable=True)
    quiet_hours_end = Column(String(5), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)


__all__ = ["NotificationPreferencesModel"]
