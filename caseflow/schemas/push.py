"""
schemas/push.py — Pydantic models for Web Push endpoints

Called by: routers/push.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class SubscriptionCreate(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys
    user_agent: str | None = None


class SubscriptionDelete(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushSendRequest(BaseModel, extra="allow"):
    """Notification payload. Unknown keys pass through to the service worker."""

    user_id: int | None = None
    title: str | None = None
    body: str | None = None
    icon: str | None = None
    badge: str | None = None
    tag: str | None = None
    url: str | None = None
    type: str | None = None
    id: str | int | None = None
    vibrate: list[int] | None = None
    requireInteraction: bool | None = None
    silent: bool | None = None
