"""Handler tasks — per-case to-do items for the handling team."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import commit_or_raise
from ..errors import NotFoundError, ValidationError
from ..models import TASK_PRIORITIES, TASK_STATUSES, HandlerTask, Lead

log = logging.getLogger("caseflow.tasks")

OPEN_STATUSES = ("pending", "in_progress")
TASK_UPDATE_FIELDS = (
    "title", "description", "priority", "assigned_to", "due_date",
    "estimated_hours", "actual_hours", "tags",
)


def _get_task(db: Session, task_id: int) -> HandlerTask:
    task = db.get(HandlerTask, task_id)
    if not task:
        raise NotFoundError(f"Task {task_id} not found")
    return task


def _check_choices(fields: dict) -> None:
    if "priority" in fields and fields["priority"] not in TASK_PRIORITIES:
        raise ValidationError(f"Unknown priority: {fields['priority']}")
    if "status" in fields and fields["status"] not in TASK_STATUSES:
        raise ValidationError(f"Unknown task status: {fields['status']}")
    if "title" in fields and not (fields["title"] or "").strip():
        raise ValidationError("Task title is required")


def create_task(db: Session, lead_id: int, fields: dict, created_by: str | None = None) -> HandlerTask:
    if not db.get(Lead, lead_id):
        raise NotFoundError(f"Lead {lead_id} not found")
    fields = dict(fields)
    unknown = set(fields) - set(TASK_UPDATE_FIELDS) - {"status"}
    if unknown:
        raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
    if not (fields.get("title") or "").strip():
        raise ValidationError("Task title is required")
    _check_choices(fields)

    task = HandlerTask(lead_id=lead_id, created_by=created_by, **fields)
    task.title = task.title.strip()
    if task.status == "completed":
        task.completed_at = datetime.now(timezone.utc)
    db.add(task)
    commit_or_raise(db, "Create task")
    db.refresh(task)
    return task


def update_task(db: Session, task_id: int, fields: dict) -> HandlerTask:
    task = _get_task(db, task_id)
    unknown = set(fields) - set(TASK_UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
    _check_choices(fields)
    for key, value in fields.items():
        setattr(task, key, value)
    commit_or_raise(db, "Update task")
    db.refresh(task)
    return task


def update_task_status(db: Session, task_id: int, status: str) -> HandlerTask:
    """Change status. completed_at is stamped on completion and cleared on reopen."""
    _check_choices({"status": status})
    task = _get_task(db, task_id)
    if status == "completed" and task.status != "completed":
        task.completed_at = datetime.now(timezone.utc)
    elif status != "completed":
        task.completed_at = None
    task.status = status
    commit_or_raise(db, "Update task status")
    db.refresh(task)
    log.info("Task %d -> %s", task_id, status)
    return task


def delete_task(db: Session, task_id: int) -> None:
    task = _get_task(db, task_id)
    db.delete(task)
    commit_or_raise(db, "Delete task")


def list_tasks_for_lead(
    db: Session, lead_id: int, status: str | None = None, priority: str | None = None
) -> list[HandlerTask]:
    q = db.query(HandlerTask).filter(HandlerTask.lead_id == lead_id)
    if status:
        q = q.filter(HandlerTask.status == status)
    if priority:
        q = q.filter(HandlerTask.priority == priority)
    return q.order_by(HandlerTask.due_date.is_(None), HandlerTask.due_date, HandlerTask.id).all()


def count_open_tasks(db: Session, lead_ids: list[int]) -> dict[int, int]:
    if not lead_ids:
        return {}
    rows = (
        db.query(HandlerTask.lead_id, func.count(HandlerTask.id))
        .filter(HandlerTask.lead_id.in_(lead_ids), HandlerTask.status.in_(OPEN_STATUSES))
        .group_by(HandlerTask.lead_id)
        .all()
    )
    return {lead_id: count for lead_id, count in rows}


def task_to_dict(t: HandlerTask) -> dict:
    return {
        "id": t.id,
        "lead_id": t.lead_id,
        "title": t.title,
        "description": t.description,
        "priority": t.priority,
        "status": t.status,
        "assigned_to": t.assigned_to,
        "created_by": t.created_by,
        "due_date": t.due_date.isoformat() if t.due_date else None,
        "completed_at": t.completed_at.isoformat() if t.completed_at else None,
        "estimated_hours": float(t.estimated_hours) if t.estimated_hours is not None else None,
        "actual_hours": float(t.actual_hours) if t.actual_hours is not None else None,
        "tags": t.tags or [],
        "created_at": t.created_at.isoformat() if t.created_at else None,
        "updated_at": t.updated_at.isoformat() if t.updated_at else None,
    }
