"""
schemas/tasks.py — Pydantic models for handler task endpoints

Called by: routers/tasks.py
Depends on: pydantic
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator

TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskStatus = Literal["pending", "in_progress", "completed", "cancelled"]


class TaskCreate(BaseModel):
    title: str
    description: str | None = None
    priority: TaskPriority = "medium"
    status: TaskStatus = "pending"
    assigned_to: str | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task title is required")
        return v


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    actual_hours: float | None = Field(None, ge=0)
    tags: list[str] | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
