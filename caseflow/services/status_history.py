"""Status history ledger — append-only audit of document and stage changes.

Every document status change goes through record_transition(), which locks
the document row, checks the transition table, writes the new status and
appends the history row in one transaction. History rows are never updated
or deleted; they keep snapshot names so they outlive the document.

Called by: services/document_service.py, routers/history.py, routers/leads.py
Depends on: models.documents, models.leads
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..database import commit_or_raise
from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..models import DOCUMENT_STATUSES, DocumentStatusHistory, HandlerStageHistory, Lead, RequiredDocument

log = logging.getLogger("caseflow.status_history")

# Allowed next statuses per current status. approved is terminal.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "missing": frozenset({"pending", "received", "approved", "rejected"}),
    "pending": frozenset({"missing", "received", "approved", "rejected"}),
    "received": frozenset({"missing", "pending", "approved", "rejected"}),
    "rejected": frozenset({"missing", "pending", "received"}),
    "approved": frozenset(),
}


def can_transition(old_status: str, new_status: str) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(old_status, frozenset())


def record_transition(
    db: Session,
    document_id: int,
    new_status: str,
    changed_by: str | None,
    reason: str | None = None,
    notes: str | None = None,
) -> DocumentStatusHistory:
    """Change a document's status and append the matching history row.

    Raises ValidationError for an unknown status, NotFoundError for a missing
    document, InvalidTransitionError when the table forbids the change.
    Both writes commit together or not at all.
    """
    if new_status not in DOCUMENT_STATUSES:
        raise ValidationError(f"Unknown document status: {new_status}")

    doc = (
        db.query(RequiredDocument)
        .filter(RequiredDocument.id == document_id)
        .with_for_update()
        .first()
    )
    if not doc:
        db.rollback()
        raise NotFoundError(f"Document {document_id} not found")

    old_status = doc.status
    if not can_transition(old_status, new_status):
        db.rollback()
        raise InvalidTransitionError(old_status, new_status)

    now = datetime.now(timezone.utc)
    doc.status = new_status
    if new_status == "received":
        doc.received_date = now
    elif new_status == "approved":
        doc.approved_date = now

    entry = DocumentStatusHistory(
        lead_id=doc.lead_id,
        document_id=doc.id,
        document_name=doc.document_name,
        contact_name=doc.contact.name if doc.contact else None,
        old_status=old_status,
        new_status=new_status,
        changed_by_name=changed_by,
        change_reason=reason,
        notes=notes,
        created_at=now,
    )
    db.add(entry)
    commit_or_raise(db, "Status change")
    db.refresh(entry)
    log.info("Document %d: %s -> %s by %s", doc.id, old_status, new_status, changed_by)
    return entry


def list_history_for_lead(db: Session, lead_id: int) -> list[DocumentStatusHistory]:
    """All document status changes for a lead, newest first."""
    return (
        db.query(DocumentStatusHistory)
        .filter(DocumentStatusHistory.lead_id == lead_id)
        .order_by(DocumentStatusHistory.created_at.desc(), DocumentStatusHistory.id.desc())
        .all()
    )


def history_to_dict(entry: DocumentStatusHistory) -> dict:
    return {
        "id": entry.id,
        "kind": "document_status",
        "lead_id": entry.lead_id,
        "document_id": entry.document_id,
        "document_name": entry.document_name,
        "contact_name": entry.contact_name,
        "old_status": entry.old_status,
        "new_status": entry.new_status,
        "changed_by_name": entry.changed_by_name,
        "change_reason": entry.change_reason,
        "notes": entry.notes,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


def stage_history_to_dict(entry: HandlerStageHistory) -> dict:
    return {
        "id": entry.id,
        "kind": "handler_stage",
        "lead_id": entry.lead_id,
        "old_handler_stage": entry.old_handler_stage,
        "new_handler_stage": entry.new_handler_stage,
        "changed_by_name": entry.changed_by_name,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


def list_activity_for_leads(db: Session, lead_ids: list[int]) -> list[dict]:
    """Merged document-status and handler-stage activity across many leads.

    Two queries total regardless of how many leads are asked for. Sorted
    newest first.
    """
    ids = sorted({int(i) for i in lead_ids})
    if not ids:
        return []

    doc_rows = (
        db.query(DocumentStatusHistory)
        .filter(DocumentStatusHistory.lead_id.in_(ids))
        .all()
    )
    stage_rows = (
        db.query(HandlerStageHistory)
        .filter(HandlerStageHistory.lead_id.in_(ids))
        .all()
    )

    merged = [(r.created_at, history_to_dict(r)) for r in doc_rows]
    merged += [(r.created_at, stage_history_to_dict(r)) for r in stage_rows]
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    merged.sort(key=lambda pair: pair[0] or epoch, reverse=True)
    return [item for _, item in merged]


def change_handler_stage(
    db: Session, lead_id: int, new_stage: str, changed_by: str | None
) -> HandlerStageHistory | None:
    """Set Lead.handler_stage and log the change atomically.

    Returns the history row, or None when the stage is unchanged.
    """
    lead = db.query(Lead).filter(Lead.id == lead_id).with_for_update().first()
    if not lead:
        db.rollback()
        raise NotFoundError(f"Lead {lead_id} not found")

    old_stage = lead.handler_stage
    if old_stage == new_stage:
        db.rollback()
        return None

    lead.handler_stage = new_stage
    entry = HandlerStageHistory(
        lead_id=lead.id,
        old_handler_stage=old_stage,
        new_handler_stage=new_stage,
        changed_by_name=changed_by,
    )
    db.add(entry)
    commit_or_raise(db, "Handler stage change")
    db.refresh(entry)
    log.info("Lead %s handler stage: %s -> %s by %s", lead.lead_number, old_stage, new_stage, changed_by)
    return entry
