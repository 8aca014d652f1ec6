"""Documents API — required documents, status changes and the template catalog."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..errors import NotFoundError
from ..models import Contact, User
from ..schemas.documents import (
    DocumentCreate,
    DocumentFromTemplate,
    DocumentSourceUpdate,
    DocumentStatusUpdate,
    DocumentUpdate,
)
from ..schemas.responses import OkResponse
from ..services import document_service, lead_service
from ..services.document_service import document_to_dict
from ..services.status_history import history_to_dict

router = APIRouter(tags=["documents"])


@router.get("/api/leads/{lead_id}/documents")
async def list_lead_documents(lead_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    lead_service.get_lead(db, lead_id)
    return [document_to_dict(d) for d in document_service.list_documents_for_lead(db, lead_id)]


@router.post("/api/leads/{lead_id}/documents", status_code=201)
async def add_document(
    lead_id: int,
    body: DocumentCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    doc = document_service.add_required_document(
        db,
        lead_id,
        body.document_name,
        document_type=body.document_type,
        contact_id=body.contact_id,
        due_date=body.due_date,
        notes=body.notes,
        is_required=body.is_required,
        status=body.status,
        requested_by=user.display_name,
    )
    return document_to_dict(doc)


@router.post("/api/leads/{lead_id}/documents/from-template", status_code=201)
async def add_document_from_template(
    lead_id: int,
    body: DocumentFromTemplate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    doc = document_service.add_template_document(
        db, lead_id, body.template_id, contact_id=body.contact_id, requested_by=user.display_name
    )
    return document_to_dict(doc)


@router.get("/api/contacts/{contact_id}/documents")
async def list_contact_documents(contact_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    if not db.get(Contact, contact_id):
        raise NotFoundError(f"Contact {contact_id} not found")
    return [document_to_dict(d) for d in document_service.list_documents_for_contact(db, contact_id)]


@router.put("/api/documents/{document_id}")
async def update_document(
    document_id: int,
    body: DocumentUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    doc = document_service.update_document(db, document_id, **body.model_dump(exclude_unset=True))
    return document_to_dict(doc)


@router.put("/api/documents/{document_id}/status")
async def update_document_status(
    document_id: int,
    body: DocumentStatusUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Change status through the audited transition path."""
    entry = document_service.update_document_status(
        db, document_id, body.status, user.display_name, reason=body.change_reason, notes=body.notes
    )
    return history_to_dict(entry)


@router.put("/api/documents/{document_id}/requested-from")
async def update_requested_from(
    document_id: int,
    body: DocumentSourceUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    doc = document_service.update_requested_from(db, document_id, body.value, user.display_name)
    return document_to_dict(doc)


@router.put("/api/documents/{document_id}/received-from")
async def update_received_from(
    document_id: int,
    body: DocumentSourceUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    doc = document_service.update_received_from(db, document_id, body.value, user.display_name)
    return document_to_dict(doc)


@router.delete("/api/documents/{document_id}", response_model=OkResponse)
async def delete_document(document_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    document_service.delete_document(db, document_id)
    return {"ok": True}


@router.get("/api/document-templates")
async def list_templates(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return [
        {
            "id": t.id,
            "name": t.name,
            "category": t.category,
            "description": t.description,
            "typical_due_days": t.typical_due_days,
            "instructions": t.instructions,
        }
        for t in document_service.list_templates(db)
    ]
