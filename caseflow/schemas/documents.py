"""
schemas/documents.py — Pydantic models for required-document endpoints

Business Rules:
- Document name is required and non-empty
- document_type must be one of models.documents.DOCUMENT_TYPES
- Status changes go through DocumentStatusUpdate so every change is logged

Called by: routers/documents.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, field_validator

DocumentType = Literal["identity", "civil_status", "legal", "financial", "professional", "health", "other"]
DocumentStatus = Literal["missing", "pending", "received", "approved", "rejected"]


class DocumentCreate(BaseModel):
    document_name: str
    document_type: DocumentType = "other"
    contact_id: int | None = None
    due_date: date | None = None
    notes: str | None = None
    is_required: bool = True
    status: DocumentStatus = "missing"

    @field_validator("document_name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Document name is required")
        return v


class DocumentFromTemplate(BaseModel):
    template_id: int
    contact_id: int | None = None


class DocumentUpdate(BaseModel):
    document_name: str | None = None
    document_type: DocumentType | None = None
    due_date: date | None = None
    notes: str | None = None
    is_required: bool | None = None


class DocumentStatusUpdate(BaseModel):
    status: DocumentStatus
    change_reason: str | None = None
    notes: str | None = None


class DocumentSourceUpdate(BaseModel):
    value: str | None = None
