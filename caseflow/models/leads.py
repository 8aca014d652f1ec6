"""Lead (case) models — cases, numbering, handler stage history, intake."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Lead(Base):
    """A case. Created by the intake webhook or by staff; never hard-deleted."""

    __tablename__ = "leads"
    id = Column(Integer, primary_key=True)
    lead_number = Column(String(32), unique=True, nullable=False)  # "L<n>"
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(100))
    mobile = Column(String(100))
    topic = Column(String(255))
    category = Column(String(100))
    facts = Column(JSON)  # opaque intake payload, persisted as given
    source = Column(String(100))
    source_code = Column(Integer)
    language = Column(String(50))

    # Workflow
    stage = Column(String(50), default="created")
    status = Column(String(50), default="new")
    handler_stage = Column(String(50))
    balance = Column(Numeric(12, 2))
    balance_currency = Column(String(10))

    # Memoized OneDrive folder (avoids re-provisioning)
    onedrive_folder_id = Column(String(255))
    onedrive_folder_link = Column(String(1024))

    # Role assignments (staff display names)
    handler = Column(String(255))
    expert = Column(String(255))
    closer = Column(String(255))
    manager = Column(String(255))
    scheduler = Column(String(255))

    created_by = Column(String(255))
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    contacts = relationship(
        "Contact", back_populates="lead", cascade="all, delete-orphan", passive_deletes=True
    )
    documents = relationship(
        "RequiredDocument", back_populates="lead", cascade="all, delete-orphan", passive_deletes=True
    )
    tasks = relationship(
        "HandlerTask", back_populates="lead", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_leads_email", "email"),
        Index("ix_leads_phone", "phone"),
        Index("ix_leads_created", "created_at"),
    )


class LeadNumberSequence(Base):
    """Row-locked counter behind lead numbers. One row per prefix."""

    __tablename__ = "lead_number_sequences"
    prefix = Column(String(8), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class HandlerStageHistory(Base):
    """Append-only log of handler stage changes on a lead."""

    __tablename__ = "lead_handler_stage_history"
    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    old_handler_stage = Column(String(50))
    new_handler_stage = Column(String(50), nullable=False)
    changed_by_name = Column(String(255))
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    lead = relationship("Lead")

    __table_args__ = (Index("ix_stage_history_lead_created", "lead_id", "created_at"),)


class DuplicateLead(Base):
    """Intake submission held for review because it matched an existing case."""

    __tablename__ = "double_leads"
    id = Column(Integer, primary_key=True)
    new_lead_data = Column(JSON, nullable=False)
    existing_lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    duplicate_fields = Column(JSON, default=list)
    status = Column(String(20), default="pending")  # pending | merged | dismissed
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    existing_lead = relationship("Lead")


class IntakeSettings(Base):
    """On/off switch for the public intake webhook. No row means enabled."""

    __tablename__ = "webhook_settings"
    id = Column(Integer, primary_key=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text)
    updated_by = Column(String(255))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
