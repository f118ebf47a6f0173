"""SQLAlchemy model for push device tokens."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class DeviceTokenModel(Base):
    """Database representation of a provider-issued push token."""

    __tablename__ = "device_token"
    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_device_token_user_token"),
        Index("ix_device_token_user_device", "user_id", "device_id"),
        Index("ix_device_token_active_last_used", "is_active", "last_used_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    token = Column(String(512), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    device_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["DeviceTokenModel"]
