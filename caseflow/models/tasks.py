"""Handler tasks — per-case to-dos."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("pending", "in_progress", "completed", "cancelled")


class HandlerTask(Base):
    __tablename__ = "handler_tasks"
    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    priority = Column(String(10), default="medium")
    # Status workflow: pending → in_progress → completed | cancelled
    status = Column(String(20), default="pending", nullable=False)
    assigned_to = Column(String(255))
    created_by = Column(String(255))
    due_date = Column(Date)
    completed_at = Column(UTCDateTime)
    estimated_hours = Column(Numeric(6, 2))
    actual_hours = Column(Numeric(6, 2))
    tags = Column(JSON, default=list)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    lead = relationship("Lead", back_populates="tasks")

    __table_args__ = (
        Index("ix_tasks_lead_status", "lead_id", "status"),
        Index("ix_tasks_due", "due_date"),
    )
