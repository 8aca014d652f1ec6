"""
schemas/contacts.py — Pydantic models for family-member contacts

Business Rules:
- Contact name is required and non-empty
- relationship must be one of models.contacts.RELATIONSHIPS
- is_main_applicant is derived from relationship by the service; any value
  sent by the client is overridden

Called by: routers/contacts.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, field_validator

from ..models.contacts import RELATIONSHIPS


def _check_relationship(v: str | None) -> str | None:
    if v is not None and v not in RELATIONSHIPS:
        raise ValueError(f"Unknown relationship: {v}")
    return v


class ContactCreate(BaseModel):
    name: str
    relationship: str = "other"
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = None
    current_address: str | None = None
    citizenship: str | None = None
    passport_number: str | None = None
    id_number: str | None = None
    is_persecuted: bool = False
    contact_notes: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Contact name is required")
        return v

    @field_validator("relationship")
    @classmethod
    def relationship_known(cls, v: str) -> str:
        return _check_relationship(v)


class ContactUpdate(BaseModel):
    name: str | None = None
    relationship: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None
    birth_date: date | None = None
    death_date: date | None = None
    birth_place: str | None = None
    current_address: str | None = None
    citizenship: str | None = None
    passport_number: str | None = None
    id_number: str | None = None
    is_persecuted: bool | None = None
    contact_notes: str | None = None

    @field_validator("relationship")
    @classmethod
    def relationship_known(cls, v: str | None) -> str | None:
        return _check_relationship(v)
