"""History API — document status ledger and merged case activity."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import User
from ..schemas.leads import ActivityRequest
from ..services import lead_service
from ..services.status_history import history_to_dict, list_activity_for_leads, list_history_for_lead

router = APIRouter(tags=["history"])

MAX_ACTIVITY_LEADS = 500


@router.get("/api/leads/{lead_id}/history")
async def lead_history(lead_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    lead_service.get_lead(db, lead_id)
    return [history_to_dict(h) for h in list_history_for_lead(db, lead_id)]


@router.post("/api/history/activity")
async def activity(body: ActivityRequest, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Recent activity across many leads in two queries."""
    return list_activity_for_leads(db, body.lead_ids[:MAX_ACTIVITY_LEADS])
