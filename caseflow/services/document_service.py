"""Document requirement registry — required documents per case and contact.

Status changes are never written here directly; update_document_status()
hands off to status_history.record_transition() so each change is logged.

Called by: routers/documents.py, services/contact_service.py
Depends on: models.documents, services/status_history.py
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import commit_or_raise
from ..errors import NotFoundError, ValidationError
from ..models import (
    DOCUMENT_STATUSES,
    DOCUMENT_TYPES,
    Contact,
    DocumentStatusHistory,
    DocumentTemplate,
    Lead,
    RequiredDocument,
)
from .status_history import record_transition

log = logging.getLogger("caseflow.documents")

EDITABLE_FIELDS = ("document_name", "document_type", "due_date", "notes", "is_required")


def _resolve_owner(db: Session, lead_id: int | None, contact_id: int | None) -> None:
    if not lead_id:
        raise ValidationError("lead_id is required")
    if not db.get(Lead, lead_id):
        raise NotFoundError(f"Lead {lead_id} not found")
    if contact_id is not None:
        contact = db.get(Contact, contact_id)
        if not contact or contact.lead_id != lead_id:
            raise NotFoundError(f"Contact {contact_id} not found on lead {lead_id}")


def _get_document(db: Session, document_id: int) -> RequiredDocument:
    doc = db.get(RequiredDocument, document_id)
    if not doc:
        raise NotFoundError(f"Document {document_id} not found")
    return doc


def build_document(
    lead_id: int,
    name: str,
    document_type: str = "other",
    contact_id: int | None = None,
    due_date=None,
    notes: str | None = None,
    is_required: bool = True,
    status: str = "missing",
    requested_by: str | None = None,
) -> RequiredDocument:
    """Validate fields and return an unsaved RequiredDocument."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Document name is required")
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Unknown document type: {document_type}")
    if status not in DOCUMENT_STATUSES:
        raise ValidationError(f"Unknown document status: {status}")
    return RequiredDocument(
        lead_id=lead_id,
        contact_id=contact_id,
        document_name=name,
        document_type=document_type,
        due_date=due_date,
        notes=notes,
        is_required=is_required,
        status=status,
        requested_by=requested_by,
    )


def add_required_document(
    db: Session,
    lead_id: int,
    name: str,
    document_type: str = "other",
    contact_id: int | None = None,
    due_date=None,
    notes: str | None = None,
    is_required: bool = True,
    status: str = "missing",
    requested_by: str | None = None,
) -> RequiredDocument:
    _resolve_owner(db, lead_id, contact_id)
    doc = build_document(
        lead_id, name, document_type, contact_id, due_date, notes, is_required, status, requested_by
    )
    db.add(doc)
    commit_or_raise(db, "Add document")
    db.refresh(doc)
    log.info("Document '%s' added to lead %d", doc.document_name, lead_id)
    return doc


def template_document(
    lead_id: int, template: DocumentTemplate, contact_id: int | None = None,
    requested_by: str | None = None,
) -> RequiredDocument:
    """Unsaved document stamped from a catalog template.

    due_date = today + typical_due_days; the template's instructions become notes.
    """
    due = (datetime.now(timezone.utc) + timedelta(days=template.typical_due_days or 0)).date()
    category = template.category if template.category in DOCUMENT_TYPES else "other"
    return build_document(
        lead_id,
        template.name,
        document_type=category,
        contact_id=contact_id,
        due_date=due,
        notes=template.instructions,
        requested_by=requested_by,
    )


def add_template_document(
    db: Session,
    lead_id: int,
    template: DocumentTemplate | int,
    contact_id: int | None = None,
    requested_by: str | None = None,
) -> RequiredDocument:
    """Add a document from a template. Calling twice creates two rows."""
    if isinstance(template, int):
        found = db.get(DocumentTemplate, template)
        if not found:
            raise NotFoundError(f"Template {template} not found")
        template = found
    _resolve_owner(db, lead_id, contact_id)
    doc = template_document(lead_id, template, contact_id, requested_by)
    db.add(doc)
    commit_or_raise(db, "Add template document")
    db.refresh(doc)
    return doc


def update_document_status(
    db: Session,
    document_id: int,
    new_status: str,
    changed_by: str | None,
    reason: str | None = None,
    notes: str | None = None,
) -> DocumentStatusHistory:
    return record_transition(db, document_id, new_status, changed_by, reason=reason, notes=notes)


def update_document(db: Session, document_id: int, **fields) -> RequiredDocument:
    """Edit descriptive fields. Status is not editable here."""
    doc = _get_document(db, document_id)
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

    if "document_name" in fields:
        name = (fields["document_name"] or "").strip()
        if not name:
            raise ValidationError("Document name is required")
        fields["document_name"] = name
    if "document_type" in fields and fields["document_type"] not in DOCUMENT_TYPES:
        raise ValidationError(f"Unknown document type: {fields['document_type']}")

    for key, value in fields.items():
        setattr(doc, key, value)
    commit_or_raise(db, "Update document")
    db.refresh(doc)
    return doc


def _set_source(db: Session, document_id: int, field: str, value: str | None, changed_by: str | None):
    doc = _get_document(db, document_id)
    setattr(doc, field, (value or "").strip() or None)
    setattr(doc, f"{field}_changed_at", datetime.now(timezone.utc))
    setattr(doc, f"{field}_changed_by", changed_by)
    commit_or_raise(db, f"Update {field}")
    db.refresh(doc)
    return doc


def update_requested_from(db: Session, document_id: int, value: str | None, changed_by: str | None):
    """Record who the document was requested from."""
    return _set_source(db, document_id, "requested_from", value, changed_by)


def update_received_from(db: Session, document_id: int, value: str | None, changed_by: str | None):
    """Record who the document arrived from."""
    return _set_source(db, document_id, "received_from", value, changed_by)


def delete_document(db: Session, document_id: int) -> None:
    """Hard delete. History rows survive with document_id nulled."""
    doc = _get_document(db, document_id)
    db.delete(doc)
    commit_or_raise(db, "Delete document")
    log.info("Document %d deleted", document_id)


def list_documents_for_lead(db: Session, lead_id: int) -> list[RequiredDocument]:
    return (
        db.query(RequiredDocument)
        .filter(RequiredDocument.lead_id == lead_id)
        .order_by(RequiredDocument.created_at, RequiredDocument.id)
        .all()
    )


def list_documents_for_contact(db: Session, contact_id: int) -> list[RequiredDocument]:
    return (
        db.query(RequiredDocument)
        .filter(RequiredDocument.contact_id == contact_id)
        .order_by(RequiredDocument.created_at, RequiredDocument.id)
        .all()
    )


def list_templates(db: Session, active_only: bool = True) -> list[DocumentTemplate]:
    q = db.query(DocumentTemplate)
    if active_only:
        q = q.filter(DocumentTemplate.is_active.is_(True))
    return q.order_by(DocumentTemplate.category, DocumentTemplate.name).all()


def count_missing_documents(db: Session, lead_ids: list[int]) -> dict[int, int]:
    """Missing-document counts per lead (dashboard badge). Leads with none are omitted."""
    if not lead_ids:
        return {}
    rows = (
        db.query(RequiredDocument.lead_id, func.count(RequiredDocument.id))
        .filter(RequiredDocument.lead_id.in_(lead_ids), RequiredDocument.status == "missing")
        .group_by(RequiredDocument.lead_id)
        .all()
    )
    return {lead_id: count for lead_id, count in rows}


def document_to_dict(doc: RequiredDocument) -> dict:
    def _iso(v):
        return v.isoformat() if v else None

    return {
        "id": doc.id,
        "lead_id": doc.lead_id,
        "contact_id": doc.contact_id,
        "document_name": doc.document_name,
        "document_type": doc.document_type,
        "is_required": doc.is_required,
        "status": doc.status,
        "due_date": _iso(doc.due_date),
        "notes": doc.notes,
        "requested_by": doc.requested_by,
        "requested_from": doc.requested_from,
        "requested_from_changed_at": _iso(doc.requested_from_changed_at),
        "requested_from_changed_by": doc.requested_from_changed_by,
        "received_from": doc.received_from,
        "received_from_changed_at": _iso(doc.received_from_changed_at),
        "received_from_changed_by": doc.received_from_changed_by,
        "requested_date": _iso(doc.requested_date),
        "received_date": _iso(doc.received_date),
        "approved_date": _iso(doc.approved_date),
        "created_at": _iso(doc.created_at),
        "updated_at": _iso(doc.updated_at),
    }
