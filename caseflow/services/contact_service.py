"""Contact/family registry — family members on a case and their completion.

Business rules:
- is_main_applicant is true exactly when relationship == persecuted_person;
  enforced on create and on every relationship change.
- A new contact gets the default documents configured for its relationship
  (DefaultDocumentRule rows) in the same transaction as the insert.
- Completion counts approved and received documents as complete.

Called by: routers/contacts.py, routers/leads.py
Depends on: models.contacts, models.documents, services/document_service.py
"""

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import commit_or_raise
from ..errors import NotFoundError, ValidationError
from ..models import (
    COMPLETED_STATUSES,
    RELATIONSHIPS,
    Contact,
    DefaultDocumentRule,
    DocumentTemplate,
    Lead,
    RequiredDocument,
)
from .document_service import template_document

log = logging.getLogger("caseflow.contacts")

MAIN_APPLICANT_RELATIONSHIP = "persecuted_person"

CONTACT_FIELDS = (
    "name", "email", "phone", "mobile", "relationship", "birth_date", "death_date",
    "birth_place", "current_address", "citizenship", "passport_number",
    "id_number", "is_persecuted", "contact_notes",
)


@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int
    percentage: int


def completion_stats(documents) -> CompletionStats:
    """Completion of a set of documents. 0% when there are none."""
    statuses = [getattr(d, "status", d) for d in documents]
    total = len(statuses)
    completed = sum(1 for s in statuses if s in COMPLETED_STATUSES)
    percentage = round(100 * completed / total) if total else 0
    return CompletionStats(total=total, completed=completed, percentage=percentage)


def _apply_fields(contact: Contact, fields: dict) -> None:
    unknown = set(fields) - set(CONTACT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown contact fields: {', '.join(sorted(unknown))}")
    if "name" in fields:
        name = (fields["name"] or "").strip()
        if not name:
            raise ValidationError("Contact name is required")
        fields["name"] = name
    if "relationship" in fields and fields["relationship"] not in RELATIONSHIPS:
        raise ValidationError(f"Unknown relationship: {fields['relationship']}")

    for key, value in fields.items():
        setattr(contact, key, value)
    contact.is_main_applicant = contact.relationship == MAIN_APPLICANT_RELATIONSHIP


def _get_contact(db: Session, contact_id: int) -> Contact:
    contact = db.get(Contact, contact_id)
    if not contact:
        raise NotFoundError(f"Contact {contact_id} not found")
    return contact


def create_default_documents_for_contact(
    db: Session, lead_id: int, contact_id: int, relationship: str
) -> list[RequiredDocument]:
    """Stamp one RequiredDocument per active rule for the relationship.

    Adds to the session without committing; the caller owns the transaction.
    Unmapped relationships get nothing.
    """
    rules = (
        db.query(DefaultDocumentRule)
        .join(DocumentTemplate, DocumentTemplate.id == DefaultDocumentRule.template_id)
        .filter(
            DefaultDocumentRule.relationship_type == relationship,
            DefaultDocumentRule.is_active.is_(True),
            DocumentTemplate.is_active.is_(True),
        )
        .order_by(DefaultDocumentRule.id)
        .all()
    )
    docs = [template_document(lead_id, rule.template, contact_id) for rule in rules]
    db.add_all(docs)
    return docs


def add_contact(db: Session, lead_id: int, fields: dict) -> Contact:
    if not db.get(Lead, lead_id):
        raise NotFoundError(f"Lead {lead_id} not found")
    fields = dict(fields)
    fields.setdefault("relationship", "other")
    if not (fields.get("name") or "").strip():
        raise ValidationError("Contact name is required")

    contact = Contact(lead_id=lead_id)
    _apply_fields(contact, fields)
    db.add(contact)
    db.flush()
    docs = create_default_documents_for_contact(db, lead_id, contact.id, contact.relationship)
    commit_or_raise(db, "Add contact")
    db.refresh(contact)
    log.info(
        "Contact %d (%s) added to lead %d with %d default documents",
        contact.id, contact.relationship, lead_id, len(docs),
    )
    return contact


def update_contact(db: Session, contact_id: int, fields: dict) -> Contact:
    contact = _get_contact(db, contact_id)
    _apply_fields(contact, dict(fields))
    commit_or_raise(db, "Update contact")
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact_id: int) -> None:
    """Delete a contact and its documents. Their status history survives."""
    contact = _get_contact(db, contact_id)
    db.delete(contact)
    commit_or_raise(db, "Delete contact")
    log.info("Contact %d deleted", contact_id)


def compute_completion_stats(db: Session, contact_id: int) -> CompletionStats:
    _get_contact(db, contact_id)
    statuses = [
        s for (s,) in db.query(RequiredDocument.status)
        .filter(RequiredDocument.contact_id == contact_id)
        .all()
    ]
    return completion_stats(statuses)


def list_contacts_for_lead(db: Session, lead_id: int) -> list[dict]:
    """Contacts for a lead, main applicant first, with document completion."""
    contacts = (
        db.query(Contact)
        .filter(Contact.lead_id == lead_id)
        .order_by(Contact.is_main_applicant.desc(), Contact.created_at, Contact.id)
        .all()
    )
    statuses: dict[int, list[str]] = {c.id: [] for c in contacts}
    if contacts:
        rows = (
            db.query(RequiredDocument.contact_id, RequiredDocument.status)
            .filter(RequiredDocument.contact_id.in_(list(statuses)))
            .all()
        )
        for contact_id, status in rows:
            statuses[contact_id].append(status)

    out = []
    for c in contacts:
        stats = completion_stats(statuses[c.id])
        row = contact_to_dict(c)
        row.update(
            document_count=stats.total,
            completed_documents=stats.completed,
            completion_percentage=stats.percentage,
        )
        out.append(row)
    return out


def count_applicants(db: Session, lead_ids: list[int]) -> dict[int, int]:
    """Family members per lead, excluding persecuted persons."""
    if not lead_ids:
        return {}
    rows = (
        db.query(Contact.lead_id, func.count(Contact.id))
        .filter(
            Contact.lead_id.in_(lead_ids),
            Contact.relationship != MAIN_APPLICANT_RELATIONSHIP,
        )
        .group_by(Contact.lead_id)
        .all()
    )
    return {lead_id: count for lead_id, count in rows}


def contact_to_dict(c: Contact) -> dict:
    return {
        "id": c.id,
        "lead_id": c.lead_id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "mobile": c.mobile,
        "relationship": c.relationship,
        "birth_date": c.birth_date.isoformat() if c.birth_date else None,
        "death_date": c.death_date.isoformat() if c.death_date else None,
        "birth_place": c.birth_place,
        "current_address": c.current_address,
        "citizenship": c.citizenship,
        "passport_number": c.passport_number,
        "id_number": c.id_number,
        "is_main_applicant": bool(c.is_main_applicant),
        "is_persecuted": bool(c.is_persecuted),
        "contact_notes": c.contact_notes,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "updated_at": c.updated_at.isoformat() if c.updated_at else None,
    }
