"""Document tracking models — required documents, templates, status ledger."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base

DOCUMENT_STATUSES = ("missing", "pending", "received", "approved", "rejected")
DOCUMENT_TYPES = ("identity", "civil_status", "legal", "financial", "professional", "health", "other")
COMPLETED_STATUSES = frozenset({"approved", "received"})


class RequiredDocument(Base):
    """A document the case needs. contact_id NULL means it applies to the whole case."""

    __tablename__ = "lead_required_documents"
    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="CASCADE"))
    document_name = Column(String(255), nullable=False)
    document_type = Column(String(32), default="other")
    is_required = Column(Boolean, default=True)

    # Lifecycle: see services/status_history.ALLOWED_TRANSITIONS
    status = Column(String(20), nullable=False, default="missing")
    due_date = Column(Date)
    notes = Column(Text)
    requested_by = Column(String(255))
    requested_date = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    received_date = Column(UTCDateTime)
    approved_date = Column(UTCDateTime)

    # Where the document was requested from / arrived from, with who set it
    requested_from = Column(String(255))
    requested_from_changed_at = Column(UTCDateTime)
    requested_from_changed_by = Column(String(255))
    received_from = Column(String(255))
    received_from_changed_at = Column(UTCDateTime)
    received_from_changed_by = Column(String(255))

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    lead = relationship("Lead", back_populates="documents")
    contact = relationship("Contact", back_populates="documents")

    __table_args__ = (
        Index("ix_lrd_lead", "lead_id"),
        Index("ix_lrd_contact", "contact_id"),
        Index("ix_lrd_lead_status", "lead_id", "status"),
    )


class DocumentTemplate(Base):
    """Catalog entry used to stamp out RequiredDocuments."""

    __tablename__ = "document_templates"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    category = Column(String(32), nullable=False, default="other")
    description = Column(Text)
    typical_due_days = Column(Integer, nullable=False, default=30)
    instructions = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))


class DefaultDocumentRule(Base):
    """Relationship → template mapping applied when a contact is added."""

    __tablename__ = "default_document_rules"
    id = Column(Integer, primary_key=True)
    relationship_type = Column("relationship", String(32), nullable=False)
    template_id = Column(
        Integer, ForeignKey("document_templates.id", ondelete="CASCADE"), nullable=False
    )
    is_active = Column(Boolean, default=True)

    template = relationship("DocumentTemplate")

    __table_args__ = (Index("ix_ddr_relationship", "relationship", "is_active"),)


class DocumentStatusHistory(Base):
    """Append-only audit row, one per status transition.

    document_name / contact_name are snapshots so the trail survives
    deletion of the document or contact (document_id is nulled then).
    """

    __tablename__ = "document_status_history"
    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    document_id = Column(
        Integer, ForeignKey("lead_required_documents.id", ondelete="SET NULL")
    )
    document_name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    old_status = Column(String(20))
    new_status = Column(String(20), nullable=False)
    changed_by_name = Column(String(255))
    change_reason = Column(Text)
    notes = Column(Text)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_dsh_lead_created", "lead_id", "created_at"),
        Index("ix_dsh_document", "document_id"),
    )
