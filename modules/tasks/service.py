"""Task service: CRUD with history, and the recurrence sweep.

Usage:
    from modules.tasks.service import create_task, process_task_recurrence

    with get_session() as session:
        stats = process_task_recurrence(session, today=date(2026, 3, 6))

All functions take a SQLAlchemy session; the caller manages commit.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.db.models import Task, TaskHistory
from common.errors import NotFound, ValidationError

from .recurrence import is_recurring, next_due_date

logger = logging.getLogger(__name__)

PRIORITIES = {"baixa", "media", "alta", "urgente"}

# Fields a caller may change through update_task
EDITABLE_FIELDS = {
    "title", "description", "priority", "category", "assignee",
    "assigned_to_id", "due_date", "due_time", "recurrence",
    "recurrence_end_date", "position",
}

# Copied from a completed recurring task into its next instance
INSTANCE_FIELDS = (
    "title", "description", "priority", "category", "assignee",
    "assigned_to_id", "due_time", "recurrence", "recurrence_end_date", "position",
)


def _record(session: Session, task: Task, action: str, field: Optional[str] = None,
            old: Any = None, new: Any = None, changed_by: Optional[str] = None) -> TaskHistory:
    entry = TaskHistory(
        task_id=task.id,
        action=action,
        field_changed=field,
        old_value=None if old is None else str(old),
        new_value=None if new is None else str(new),
        changed_by=changed_by,
    )
    session.add(entry)
    return entry


def _validate(values: dict) -> None:
    title = values.get("title")
    if "title" in values and (not title or not str(title).strip()):
        raise ValidationError("title is required")
    if title and len(title) > 500:
        raise ValidationError("title must be at most 500 characters")
    priority = values.get("priority")
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"invalid priority: {priority}")


def get_task(session: Session, task_id: str) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def list_tasks(
    session: Session,
    assigned_to_id: Optional[str] = None,
    completed: Optional[bool] = None,
    due_from: Optional[date] = None,
    due_to: Optional[date] = None,
) -> list[Task]:
    """List tasks ordered by position then due date."""
    query = select(Task)
    if assigned_to_id:
        query = query.where(Task.assigned_to_id == assigned_to_id)
    if completed is not None:
        query = query.where(Task.completed == completed)
    if due_from:
        query = query.where(Task.due_date >= due_from)
    if due_to:
        query = query.where(Task.due_date <= due_to)
    query = query.order_by(Task.position.asc().nulls_last(), Task.due_date.asc().nulls_last())
    return list(session.scalars(query))


def create_task(session: Session, values: dict, created_by: Optional[str] = None) -> Task:
    """Insert a task and a 'created' history row."""
    values = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
    if "title" not in values:
        raise ValidationError("title is required")
    _validate(values)
    task = Task(**values, created_by=created_by)
    session.add(task)
    session.flush()
    _record(session, task, "created", changed_by=created_by)
    logger.info(f"Task created: {task.id} '{task.title}'")
    return task


def update_task(session: Session, task_id: str, updates: dict,
                changed_by: Optional[str] = None) -> Task:
    """Apply updates, writing one history row per changed field."""
    task = get_task(session, task_id)
    unknown = set(updates) - EDITABLE_FIELDS - {"completed"}
    if unknown:
        raise ValidationError(f"unknown fields: {sorted(unknown)}")
    _validate(updates)

    for field, new in updates.items():
        if field == "completed":
            continue
        old = getattr(task, field)
        if old == new:
            continue
        setattr(task, field, new)
        _record(session, task, "updated", field, old, new, changed_by)

    if "completed" in updates:
        set_completed(session, task_id, bool(updates["completed"]), changed_by)
    return task


def set_completed(session: Session, task_id: str, completed: bool,
                  changed_by: Optional[str] = None) -> Task:
    """Toggle completion; completed_at follows the flag."""
    task = get_task(session, task_id)
    if task.completed == completed:
        return task
    task.completed = completed
    task.completed_at = datetime.now(timezone.utc) if completed else None
    _record(session, task, "completed" if completed else "reopened",
            "completed", not completed, completed, changed_by)
    return task


def delete_task(session: Session, task_id: str) -> None:
    task = get_task(session, task_id)
    session.delete(task)
    logger.info(f"Task deleted: {task_id}")


# ---------------------------------------------------------------------------
# Recurrence sweep
# ---------------------------------------------------------------------------

def process_task_recurrence(session: Session, today: date) -> dict:
    """Create the next instance of every completed recurring task that is due.

    A task qualifies when it is completed, has a recurrence other than
    'none', and its due date is today or earlier. It is skipped when its
    recurrence has ended, when the next date passes the end date, or when
    an instance for that parent and date already exists.

    Returns:
        {"success", "date", "tasksProcessed", "tasksCreated",
         "tasksSkipped", "createdTaskIds"}
    """
    candidates = [
        t for t in session.scalars(
            select(Task)
            .where(Task.completed.is_(True))
            .where(Task.recurrence.is_not(None))
            .where(Task.recurrence != "none")
            .where(Task.due_date <= today)
        )
        if is_recurring(t.recurrence)
    ]
    logger.info(f"Recurrence sweep for {today}: {len(candidates)} completed recurring tasks")

    created: list[str] = []
    skipped: list[str] = []

    for task in candidates:
        end = task.recurrence_end_date
        if end and end < today:
            logger.info(f"Skipping '{task.title}': recurrence ended on {end}")
            skipped.append(task.id)
            continue

        next_date = next_due_date(task.due_date, task.recurrence)

        if end and next_date > end:
            logger.info(f"Skipping '{task.title}': next date {next_date} exceeds end date {end}")
            skipped.append(task.id)
            continue

        existing = session.scalar(
            select(Task.id)
            .where(Task.parent_task_id == task.id)
            .where(Task.due_date == next_date)
            .limit(1)
        )
        if existing:
            logger.info(f"Task '{task.title}' for {next_date} already exists")
            skipped.append(task.id)
            continue

        try:
            with session.begin_nested():
                instance = Task(
                    **{f: getattr(task, f) for f in INSTANCE_FIELDS},
                    due_date=next_date,
                    parent_task_id=task.id,
                    is_recurring_instance=True,
                    completed=False,
                )
                session.add(instance)
                session.flush()
                _record(
                    session, instance, "created", "recurrence",
                    new=f"Criada automaticamente a partir de tarefa recorrente ({task.recurrence})",
                )
        except Exception as e:
            logger.error(f"Error creating instance for '{task.title}': {e}")
            continue

        logger.info(f"Created recurring instance of '{task.title}' for {next_date}")
        created.append(instance.id)

    logger.info(f"Recurrence sweep done: {len(created)} created, {len(skipped)} skipped")
    return {
        "success": True,
        "date": today.isoformat(),
        "tasksProcessed": len(candidates),
        "tasksCreated": len(created),
        "tasksSkipped": len(skipped),
        "createdTaskIds": created,
    }
