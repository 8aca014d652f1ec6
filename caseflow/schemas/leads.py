"""
schemas/leads.py — Pydantic models for lead (case) endpoints

Business Rules:
- Lead name is required and non-empty
- Handler stage changes go through PUT /api/leads/{id}/handler-stage so they
  are logged; LeadUpdate does not carry handler_stage

Called by: routers/leads.py, routers/intake.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class LeadCreate(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    topic: str | None = None
    category: str | None = None
    facts: str | dict | list | None = None
    source: str | None = None
    source_code: int | None = None
    language: str | None = None
    balance: float | None = None
    balance_currency: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Lead name is required")
        return v


class LeadUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    topic: str | None = None
    category: str | None = None
    stage: str | None = None
    status: str | None = None
    language: str | None = None
    balance: float | None = None
    balance_currency: str | None = None
    handler: str | None = None
    expert: str | None = None
    closer: str | None = None
    manager: str | None = None
    scheduler: str | None = None


class HandlerStageUpdate(BaseModel):
    handler_stage: str

    @field_validator("handler_stage")
    @classmethod
    def stage_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Handler stage is required")
        return v


class IntakeSettingsUpdate(BaseModel):
    is_active: bool
    notes: str | None = None


class ActivityRequest(BaseModel):
    lead_ids: list[int]
