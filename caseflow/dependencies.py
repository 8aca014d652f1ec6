"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for authentication, authorization and the
OneDrive store. All routers import from here instead of defining their own
auth logic.

Business Rules:
- get_user returns None if not logged in (non-throwing)
- require_user accepts the session cookie, or x-api-key + x-user-email for
  service-to-service calls; raises 401 if neither resolves, 403 if deactivated
- require_admin raises 403 if user.role != "admin"
- get_drive_store builds the OneDrive store from settings (overridden in tests)

Called by: all routers
Depends on: models, database, config, services/onedrive_service.py
"""

import hmac
import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import User
from .services.onedrive_service import OneDriveStore
from .utils.graph_auth import get_token_provider
from .utils.graph_client import GraphClient

log = logging.getLogger(__name__)


# ── Authentication ────────────────────────────────────────────────────


def get_user(request: Request, db: Session) -> User | None:
    """Return current user from session, or None if not logged in."""
    uid = request.session.get("user_id")
    if not uid:
        return None
    return db.get(User, uid)


def _user_from_api_key(request: Request, db: Session) -> User | None:
    api_key = request.headers.get("x-api-key")
    if not (api_key and settings.api_key and hmac.compare_digest(api_key, settings.api_key)):
        return None
    email = (request.headers.get("x-user-email") or "").strip().lower()
    if not email:
        return None
    return db.query(User).filter(User.email == email).first()


def require_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(request, db) or _user_from_api_key(request, db)
    if not user:
        raise HTTPException(401, "Not authenticated")
    if not user.is_active:
        request.session.clear()
        raise HTTPException(403, "Account deactivated — contact admin")
    return user


def is_admin(user: User) -> bool:
    return user.role == "admin"


def require_admin(user: User = Depends(require_user)) -> User:
    """Dependency: raises 403 if user is not an admin."""
    if not is_admin(user):
        raise HTTPException(403, "Admin access required")
    return user


# ── OneDrive ──────────────────────────────────────────────────────────


def get_drive_store() -> OneDriveStore:
    return OneDriveStore(
        GraphClient(get_token_provider()),
        settings.onedrive_user_id,
        large_upload_threshold=settings.large_upload_threshold_mb * 1024 * 1024,
        chunk_size=settings.upload_chunk_size_kb * 1024,
    )
