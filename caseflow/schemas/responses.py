"""
schemas/responses.py — Shared response models for OpenAPI documentation

Called by: routers/*.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class OkResponse(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class CompletionResponse(BaseModel):
    contact_id: int
    total: int = 0
    completed: int = 0
    percentage: int = 0


class LeadSummaryResponse(BaseModel):
    lead_id: int
    missing_documents: int = 0
    applicants: int = 0
    open_tasks: int = 0


class FileListResponse(BaseModel, extra="allow"):
    success: bool = True
    leadNumber: str
    folderId: str
    folderUrl: str | None = None
    count: int = 0
    files: list[dict] = Field(default_factory=list)


class PushSendResponse(BaseModel):
    success: bool = True
    sent: int = 0
    total: int = 0
    results: list[dict] = Field(default_factory=list)
