"""Tasks API: list, create, update, complete, delete, history."""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from common.auth.tokens import AuthContext
from common.query_cache import QueryCache
from modules.tasks import service
from modules.tasks.recurrence import Recurrence

from ..deps import get_auth_context, get_db

router = APIRouter()
task_cache = QueryCache(ttl_seconds=30)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: str = "media"
    category: Optional[str] = None
    assignee: Optional[str] = None
    assigned_to_id: Optional[str] = None
    due_date: Optional[dt.date] = None
    due_time: Optional[str] = None
    recurrence: Optional[Recurrence] = None
    recurrence_end_date: Optional[dt.date] = None
    position: Optional[int] = Field(default=None, ge=0)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: Optional[str] = None
    category: Optional[str] = None
    assignee: Optional[str] = None
    assigned_to_id: Optional[str] = None
    due_date: Optional[dt.date] = None
    due_time: Optional[str] = None
    recurrence: Optional[Recurrence] = None
    recurrence_end_date: Optional[dt.date] = None
    position: Optional[int] = Field(default=None, ge=0)
    completed: Optional[bool] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str]
    priority: str
    category: Optional[str]
    assignee: Optional[str]
    assigned_to_id: Optional[str]
    due_date: Optional[dt.date]
    due_time: Optional[str]
    completed: bool
    completed_at: Optional[dt.datetime]
    recurrence: Optional[str]
    recurrence_end_date: Optional[dt.date]
    parent_task_id: Optional[str]
    is_recurring_instance: bool
    position: Optional[int]


class TaskHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    action: str
    field_changed: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by: Optional[str]
    created_at: dt.datetime


def _values(model: BaseModel) -> dict:
    values = model.model_dump(exclude_unset=True)
    if values.get("recurrence") is not None:
        values["recurrence"] = Recurrence(values["recurrence"]).value
    return values


@router.get("/", response_model=List[TaskResponse])
async def list_tasks(
    assigned_to_id: Optional[str] = None,
    completed: Optional[bool] = None,
    due_from: Optional[dt.date] = None,
    due_to: Optional[dt.date] = None,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """List tasks; collaborators only see their own."""
    if not caller.is_admin:
        assigned_to_id = caller.user_id

    async def load():
        return [TaskResponse.model_validate(t) for t in
                service.list_tasks(db, assigned_to_id, completed, due_from, due_to)]

    return await task_cache.get(("tasks", assigned_to_id, completed, due_from, due_to), load)


@router.post("/", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreate,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    task = service.create_task(db, _values(body), created_by=caller.user_id)
    db.commit()
    task_cache.invalidate(("tasks",))
    return task


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    task = service.update_task(db, task_id, _values(body), changed_by=caller.user_id)
    db.commit()
    task_cache.invalidate(("tasks",))
    return task


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    task = service.set_completed(db, task_id, True, changed_by=caller.user_id)
    db.commit()
    task_cache.invalidate(("tasks",))
    return task


@router.get("/{task_id}/history", response_model=List[TaskHistoryResponse])
async def task_history(
    task_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return service.get_task(db, task_id).history


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    caller: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    service.delete_task(db, task_id)
    db.commit()
    task_cache.invalidate(("tasks",))
    return {"success": True}
