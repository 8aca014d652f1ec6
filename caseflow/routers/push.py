"""Push API — browser subscriptions and notification sends."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import is_admin, require_user
from ..models import User
from ..schemas.push import PushSendRequest, SubscriptionCreate, SubscriptionDelete
from ..schemas.responses import OkResponse, PushSendResponse
from ..services import push_service

router = APIRouter(tags=["push"])


@router.post("/api/push/subscriptions", status_code=201)
async def subscribe(body: SubscriptionCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    sub = push_service.register_subscription(
        db, user.id, body.endpoint, body.keys.model_dump(), user_agent=body.user_agent
    )
    return {"id": sub.id, "endpoint": sub.endpoint}


@router.delete("/api/push/subscriptions", response_model=OkResponse)
async def unsubscribe(body: SubscriptionDelete, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return {"ok": push_service.remove_subscription(db, body.endpoint)}


@router.post("/api/push/send", response_model=PushSendResponse)
async def send(body: PushSendRequest, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Notify a user (default: yourself). Sending to others is admin-only."""
    target = body.user_id or user.id
    if target != user.id and not is_admin(user):
        raise HTTPException(403, "Admin access required to notify other users")
    payload = body.model_dump(exclude={"user_id"}, exclude_none=True)
    return await push_service.send_notification_to_user(db, target, payload)
