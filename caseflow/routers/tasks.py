"""Tasks API — handler to-do items per case."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import User
from ..schemas.responses import OkResponse
from ..schemas.tasks import TaskCreate, TaskPriority, TaskStatus, TaskStatusUpdate, TaskUpdate
from ..services import lead_service, task_service
from ..services.task_service import task_to_dict

router = APIRouter(tags=["tasks"])


@router.get("/api/leads/{lead_id}/tasks")
async def list_tasks(
    lead_id: int,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    lead_service.get_lead(db, lead_id)
    return [task_to_dict(t) for t in task_service.list_tasks_for_lead(db, lead_id, status, priority)]


@router.post("/api/leads/{lead_id}/tasks", status_code=201)
async def create_task(
    lead_id: int,
    body: TaskCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    task = task_service.create_task(db, lead_id, body.model_dump(exclude_none=True), created_by=user.display_name)
    return task_to_dict(task)


@router.put("/api/tasks/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return task_to_dict(task_service.update_task(db, task_id, body.model_dump(exclude_unset=True)))


@router.put("/api/tasks/{task_id}/status")
async def update_task_status(
    task_id: int,
    body: TaskStatusUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return task_to_dict(task_service.update_task_status(db, task_id, body.status))


@router.delete("/api/tasks/{task_id}", response_model=OkResponse)
async def delete_task(task_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    task_service.delete_task(db, task_id)
    return {"ok": True}
