"""Web Push subscriptions registered by staff browsers."""

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from ..utils.encrypted_type import EncryptedText
from .base import Base


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    endpoint = Column(String(1024), nullable=False, unique=True)
    p256dh_key = Column(EncryptedText, nullable=False)
    auth_key = Column(EncryptedText, nullable=False)
    user_agent = Column(String(512))
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    user = relationship("User")

    __table_args__ = (Index("ix_push_user", "user_id"),)
