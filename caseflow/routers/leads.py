"""Leads API — case list, detail, edits, handler stage and dashboard summary."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import User
from ..schemas.leads import HandlerStageUpdate, LeadCreate, LeadUpdate
from ..schemas.responses import LeadSummaryResponse
from ..services import contact_service, document_service, lead_service, task_service
from ..services.status_history import change_handler_stage, stage_history_to_dict

router = APIRouter(tags=["leads"])


@router.get("/api/leads")
async def list_leads(
    q: str | None = Query(None, max_length=200),
    stage: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = lead_service.list_leads(db, search=q, stage=stage, limit=limit, offset=offset)
    return {
        "leads": [lead_service.lead_to_dict(r) for r in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/api/leads", status_code=201)
async def create_lead(
    body: LeadCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    lead = lead_service.create_lead(db, body.model_dump(exclude_none=True), created_by=user.display_name)
    return lead_service.lead_to_dict(lead)


@router.get("/api/leads/{lead_id}")
async def get_lead(lead_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return lead_service.lead_to_dict(lead_service.get_lead(db, lead_id))


@router.put("/api/leads/{lead_id}")
async def update_lead(
    lead_id: int,
    body: LeadUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    lead = lead_service.update_lead(db, lead_id, body.model_dump(exclude_unset=True))
    return lead_service.lead_to_dict(lead)


@router.put("/api/leads/{lead_id}/handler-stage")
async def update_handler_stage(
    lead_id: int,
    body: HandlerStageUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    entry = change_handler_stage(db, lead_id, body.handler_stage, user.display_name)
    return {
        "lead_id": lead_id,
        "handler_stage": body.handler_stage,
        "changed": entry is not None,
        "history": stage_history_to_dict(entry) if entry else None,
    }


@router.get("/api/leads/{lead_id}/summary", response_model=LeadSummaryResponse)
async def lead_summary(lead_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    lead_service.get_lead(db, lead_id)
    ids = [lead_id]
    return {
        "lead_id": lead_id,
        "missing_documents": document_service.count_missing_documents(db, ids).get(lead_id, 0),
        "applicants": contact_service.count_applicants(db, ids).get(lead_id, 0),
        "open_tasks": task_service.count_open_tasks(db, ids).get(lead_id, 0),
    }
