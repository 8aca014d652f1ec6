"""Family contacts attached to a case."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy import orm

from ..database import UTCDateTime
from .base import Base

RELATIONSHIPS = (
    "persecuted_person",
    "spouse",
    "child",
    "parent",
    "sibling",
    "grandchild",
    "grandparent",
    "great_grandchild",
    "great_grandparent",
    "grandson",
    "granddaughter",
    "great_grandson",
    "great_granddaughter",
    "nephew",
    "niece",
    "cousin",
    "uncle",
    "aunt",
    "in_law",
    "other",
)


class Contact(Base):
    """Family member on a case, described relative to the persecuted person.

    The ``relationship`` column shadows the ORM helper inside the class body,
    hence ``orm.relationship`` below.
    """

    __tablename__ = "contacts"
    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(100))
    mobile = Column(String(100))
    relationship = Column(String(32), nullable=False, default="other")
    birth_date = Column(Date)
    death_date = Column(Date)
    birth_place = Column(String(255))
    current_address = Column(Text)
    citizenship = Column(String(100))
    passport_number = Column(String(100))
    id_number = Column(String(100))
    is_main_applicant = Column(Boolean, default=False)
    is_persecuted = Column(Boolean, default=False)
    contact_notes = Column(Text)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    lead = orm.relationship("Lead", back_populates="contacts")
    documents = orm.relationship(
        "RequiredDocument",
        back_populates="contact",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_contacts_lead", "lead_id"),)
