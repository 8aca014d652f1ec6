"""Lead intake webhook — public endpoint for external form providers.

Accepts a JSON object or a url-encoded / multipart form body.

The response bodies here keep the shapes form providers already parse
(400 {error}, 500 {error, details}) instead of the shared ErrorResponse.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import require_admin, require_user
from ..errors import DatabaseError, IntakeDisabledError, ValidationError
from ..models import User
from ..rate_limit import limiter
from ..schemas.leads import IntakeSettingsUpdate
from ..services import lead_service

router = APIRouter(tags=["intake"])


@router.post("/api/hook/catch")
@limiter.limit(settings.intake_rate_limit)
async def catch_form_data(request: Request, db: Session = Depends(get_db)):
    """Turn an external form submission into a new lead."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        body = {k: v for k, v in form.items() if isinstance(v, str)}
    else:
        try:
            body = await request.json()
        except ValueError:
            body = None
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object or form data"})

    try:
        result = lead_service.intake_lead(db, body)
    except IntakeDisabledError as e:
        return JSONResponse(status_code=503, content={
            "success": False,
            "error": e.message,
            "message": "The webhook is temporarily unavailable. Please try again later.",
        })
    except ValidationError as e:
        logger.warning("Intake rejected: {}", e.message)
        return JSONResponse(status_code=400, content={"error": e.message})
    except DatabaseError as e:
        return JSONResponse(status_code=500, content={"error": "Failed to create lead", "details": e.message})

    if result.duplicate:
        return JSONResponse(status_code=200, content={
            "success": True,
            "duplicate": True,
            "message": "Potential duplicate detected. Lead stored for review.",
            "existing_lead_id": result.duplicate.existing_lead_id,
            "duplicate_fields": result.duplicate_fields,
        })

    lead = result.lead
    return JSONResponse(status_code=201, content={
        "success": True,
        "lead_number": lead.lead_number,
        "id": lead.id,
        "name": lead.name,
        "email": lead.email,
        "created_at": lead.created_at.isoformat() if lead.created_at else None,
    })


@router.get("/api/hook/health")
async def hook_health():
    return {
        "status": "OK",
        "message": "Webhook endpoint is active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/hook/settings")
async def get_intake_settings(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return {"is_active": lead_service.intake_enabled(db)}


@router.put("/api/hook/settings")
async def update_intake_settings(
    body: IntakeSettingsUpdate,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    row = lead_service.set_intake_active(db, body.is_active, body.notes, updated_by=user.display_name)
    return {"is_active": row.is_active, "notes": row.notes, "updated_by": row.updated_by}
