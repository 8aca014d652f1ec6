"""Web Push notifications to staff browsers (VAPID via pywebpush).

A user may have several subscriptions (one per browser). Sends fan out
concurrently; one failing endpoint never aborts the others. Endpoints the
push service reports as gone (404/410) are deleted.

Called by: routers/push.py
Depends on: pywebpush, models.push
"""

import asyncio
import json

from loguru import logger
from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from ..config import settings
from ..database import commit_or_raise
from ..errors import ExternalServiceError, NotFoundError, ValidationError
from ..models import PushSubscription, User

GONE_STATUSES = (404, 410)

DEFAULT_PAYLOAD = {
    "title": "Caseflow",
    "body": "You have a new notification",
    "icon": "/icon-192x192.png",
    "badge": "/icon-72x72.png",
    "tag": "caseflow-notification",
    "url": "/",
    "type": "notification",
    "id": None,
    "vibrate": [200, 100, 200],
    "requireInteraction": False,
    "silent": False,
}


def register_subscription(
    db: Session, user_id: int, endpoint: str, keys: dict, user_agent: str | None = None
) -> PushSubscription:
    """Upsert by endpoint. A browser re-subscribing moves the endpoint to the new user."""
    if not endpoint:
        raise ValidationError("Subscription endpoint is required")
    if not keys.get("p256dh") or not keys.get("auth"):
        raise ValidationError("Subscription keys p256dh and auth are required")
    if not db.get(User, user_id):
        raise NotFoundError(f"User {user_id} not found")

    sub = db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()
    if sub is None:
        sub = PushSubscription(endpoint=endpoint)
        db.add(sub)
    sub.user_id = user_id
    sub.p256dh_key = keys["p256dh"]
    sub.auth_key = keys["auth"]
    sub.user_agent = user_agent
    commit_or_raise(db, "Save push subscription")
    db.refresh(sub)
    return sub


def remove_subscription(db: Session, endpoint: str) -> bool:
    """Delete by endpoint. Returns False when it was not registered."""
    deleted = (
        db.query(PushSubscription)
        .filter(PushSubscription.endpoint == endpoint)
        .delete(synchronize_session=False)
    )
    commit_or_raise(db, "Remove push subscription")
    return bool(deleted)


def _absolute(path: str | None) -> str | None:
    if not path or path.startswith(("http://", "https://", "data:")):
        return path
    return settings.frontend_url.rstrip("/") + "/" + path.lstrip("/")


def build_notification_payload(payload: dict | None) -> dict:
    """Fill defaults and make icon/badge absolute for the service worker."""
    merged = {**DEFAULT_PAYLOAD, **{k: v for k, v in (payload or {}).items() if v is not None}}
    out = {
        "title": merged["title"],
        "body": merged["body"],
        "icon": _absolute(merged["icon"]),
        "badge": _absolute(merged["badge"]),
        "tag": merged["tag"],
        "data": {"url": merged["url"], "type": merged["type"], "id": merged["id"]},
        "vibrate": merged["vibrate"],
        "requireInteraction": bool(merged["requireInteraction"]),
        "silent": bool(merged["silent"]),
    }
    extra = {k: v for k, v in merged.items() if k not in DEFAULT_PAYLOAD and k != "user_id"}
    if extra:
        out["data"].update(extra)
    return out


def _send_one(sub: PushSubscription, data: str) -> None:
    webpush(
        subscription_info={
            "endpoint": sub.endpoint,
            "keys": {"p256dh": sub.p256dh_key, "auth": sub.auth_key},
        },
        data=data,
        vapid_private_key=settings.vapid_private_key,
        vapid_claims={"sub": f"mailto:{settings.vapid_contact_email}"},
    )


async def _deliver(sub: PushSubscription, data: str) -> dict:
    try:
        await asyncio.to_thread(_send_one, sub, data)
        return {"endpoint": sub.endpoint, "success": True}
    except WebPushException as e:
        status = getattr(e.response, "status_code", None)
        logger.warning("Push to subscription {} failed ({}): {}", sub.id, status, e)
        return {"endpoint": sub.endpoint, "success": False, "status": status, "error": str(e)}
    except Exception as e:  # connection errors from requests
        logger.warning("Push to subscription {} failed: {}", sub.id, e)
        return {"endpoint": sub.endpoint, "success": False, "status": None, "error": str(e)}


async def send_notification_to_user(db: Session, user_id: int, payload: dict | None) -> dict:
    """Send to every subscription of a user.

    Returns {success, sent, total, results}. With no subscriptions the push
    provider is never called.
    """
    subs = db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
    if not subs:
        return {"success": True, "sent": 0, "total": 0, "results": []}
    if not settings.vapid_configured:
        raise ExternalServiceError("Web Push is not configured (VAPID keys missing)")

    data = json.dumps(build_notification_payload(payload))
    results = await asyncio.gather(*(_deliver(s, data) for s in subs))

    gone = [r["endpoint"] for r in results if r.get("status") in GONE_STATUSES]
    if gone:
        db.query(PushSubscription).filter(PushSubscription.endpoint.in_(gone)).delete(
            synchronize_session=False
        )
        commit_or_raise(db, "Prune expired push subscriptions")
        logger.info("Removed {} expired push subscription(s) for user {}", len(gone), user_id)

    sent = sum(1 for r in results if r["success"])
    return {"success": True, "sent": sent, "total": len(subs), "results": list(results)}
