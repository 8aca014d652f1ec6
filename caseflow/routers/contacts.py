"""Contacts API — family members on a case."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import User
from ..schemas.contacts import ContactCreate, ContactUpdate
from ..schemas.responses import CompletionResponse, OkResponse
from ..services import contact_service, lead_service

router = APIRouter(tags=["contacts"])


@router.get("/api/leads/{lead_id}/contacts")
async def list_contacts(lead_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    lead_service.get_lead(db, lead_id)
    return contact_service.list_contacts_for_lead(db, lead_id)


@router.post("/api/leads/{lead_id}/contacts", status_code=201)
async def add_contact(
    lead_id: int,
    body: ContactCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    contact = contact_service.add_contact(db, lead_id, body.model_dump(exclude_none=True))
    return contact_service.contact_to_dict(contact)


@router.put("/api/contacts/{contact_id}")
async def update_contact(
    contact_id: int,
    body: ContactUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    contact = contact_service.update_contact(db, contact_id, body.model_dump(exclude_unset=True))
    return contact_service.contact_to_dict(contact)


@router.delete("/api/contacts/{contact_id}", response_model=OkResponse)
async def delete_contact(contact_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    contact_service.delete_contact(db, contact_id)
    return {"ok": True}


@router.get("/api/contacts/{contact_id}/completion", response_model=CompletionResponse)
async def contact_completion(contact_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    stats = contact_service.compute_completion_stats(db, contact_id)
    return {"contact_id": contact_id, "total": stats.total, "completed": stats.completed, "percentage": stats.percentage}
