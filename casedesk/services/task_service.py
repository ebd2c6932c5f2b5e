from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from ..models.database import Case, Task, TaskType
from ..models.schemas import TaskCreate, TaskStatus, TaskTypeCreate, TaskUpdate

logger = logging.getLogger(__name__)


# Task types

def list_task_types(db: Session) -> List[TaskType]:
    return db.query(TaskType).order_by(TaskType.created_at.desc(), TaskType.id.desc()).all()


def get_task_type(db: Session, type_id: int) -> Optional[TaskType]:
    return db.query(TaskType).filter(TaskType.id == type_id).first()


def _ensure_unique_type_name(db: Session, name: str, exclude_id: Optional[int] = None):
    query = db.query(TaskType).filter(TaskType.name == name)
    if exclude_id is not None:
        query = query.filter(TaskType.id != exclude_id)
    if query.first():
        raise ValueError(f"Task type '{name}' already exists")


def create_task_type(db: Session, values: TaskTypeCreate) -> TaskType:
    _ensure_unique_type_name(db, values.name)

    try:
        task_type = TaskType(name=values.name)
        db.add(task_type)
        db.commit()
        db.refresh(task_type)

        logger.info(f"Created task type '{task_type.name}'")
        return task_type

    except Exception as e:
        logger.error(f"Error creating task type {values.name}: {str(e)}")
        db.rollback()
        raise


def update_task_type(db: Session, type_id: int, values: TaskTypeCreate) -> Optional[TaskType]:
    task_type = get_task_type(db, type_id)
    if not task_type:
        return None

    _ensure_unique_type_name(db, values.name, exclude_id=type_id)

    try:
        task_type.name = values.name
        db.commit()
        db.refresh(task_type)

        logger.info(f"Renamed task type {type_id} to '{task_type.name}'")
        return task_type

    except Exception as e:
        logger.error(f"Error updating task type {type_id}: {str(e)}")
        db.rollback()
        raise


def delete_task_type(db: Session, type_id: int) -> bool:
    """Delete a task type. Existing tasks keep the type name they were created with."""
    task_type = get_task_type(db, type_id)
    if not task_type:
        return False

    try:
        db.delete(task_type)
        db.commit()

        logger.info(f"Deleted task type {type_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting task type {type_id}: {str(e)}")
        db.rollback()
        raise


# Tasks

def list_tasks(
    db: Session,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    case_id: Optional[int] = None,
    due_on: Optional[date] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None
) -> List[Task]:
    """Tasks ordered by due date, soonest first, optionally filtered."""
    query = db.query(Task)

    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)
    if case_id is not None:
        query = query.filter(Task.case_id == case_id)
    if due_on is not None:
        day_start = datetime.combine(due_on, datetime.min.time())
        query = query.filter(Task.due_date >= day_start, Task.due_date < day_start + timedelta(days=1))
    if due_from is not None:
        query = query.filter(Task.due_date >= due_from)
    if due_to is not None:
        query = query.filter(Task.due_date <= due_to)

    return query.order_by(Task.due_date.asc(), Task.id.asc()).all()


def get_task(db: Session, task_id: int) -> Optional[Task]:
    return db.query(Task).filter(Task.id == task_id).first()


def _resolve_task_links(db: Session, values: TaskCreate) -> Optional[str]:
    """Validate the task type and case references; returns the denormalized case name."""
    if not db.query(TaskType).filter(TaskType.name == values.type).first():
        raise ValueError(f"Unknown task type '{values.type}'")

    if values.case_id is None:
        return None

    case = db.query(Case).filter(Case.id == values.case_id).first()
    if not case:
        raise ValueError(f"Case {values.case_id} does not exist")
    return case.display_name


def create_task(db: Session, values: TaskCreate) -> Task:
    case_name = _resolve_task_links(db, values)

    try:
        task = Task(**values.model_dump(), case_name=case_name)
        db.add(task)
        db.commit()
        db.refresh(task)

        logger.info(f"Created task '{task.task_name}' due {task.due_date:%Y-%m-%d}")
        return task

    except Exception as e:
        logger.error(f"Error creating task {values.task_name}: {str(e)}")
        db.rollback()
        raise


def update_task(db: Session, task_id: int, values: TaskUpdate) -> Optional[Task]:
    task = get_task(db, task_id)
    if not task:
        return None

    case_name = _resolve_task_links(db, values)

    try:
        for field, value in values.model_dump().items():
            setattr(task, field, value)
        task.case_name = case_name

        db.commit()
        db.refresh(task)

        logger.info(f"Updated task {task_id}")
        return task

    except Exception as e:
        logger.error(f"Error updating task {task_id}: {str(e)}")
        db.rollback()
        raise


def toggle_task_status(db: Session, task_id: int) -> Optional[Task]:
    """Flip a task between pending and completed."""
    task = get_task(db, task_id)
    if not task:
        return None

    try:
        task.status = (
            TaskStatus.COMPLETED.value if task.status == TaskStatus.PENDING.value
            else TaskStatus.PENDING.value
        )
        db.commit()
        db.refresh(task)

        logger.info(f"Task {task_id} marked {task.status}")
        return task

    except Exception as e:
        logger.error(f"Error toggling task {task_id}: {str(e)}")
        db.rollback()
        raise


def delete_task(db: Session, task_id: int) -> bool:
    task = get_task(db, task_id)
    if not task:
        return False

    try:
        db.delete(task)
        db.commit()

        logger.info(f"Deleted task {task_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {str(e)}")
        db.rollback()
        raise


def task_calendar(db: Session, year: int, month: int) -> List[Dict]:
    """Per-day counts of pending and completed tasks for one month; days without tasks are omitted."""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")

    first_day = datetime(year, month, 1)
    last_day = monthrange(year, month)[1]

    query = db.query(Task).filter(Task.due_date >= first_day)
    # December of the last representable year has no following month
    if first_day.year < datetime.max.year or month < 12:
        query = query.filter(Task.due_date < first_day + timedelta(days=last_day))
    tasks = query.all()

    days: Dict[str, Dict] = {}
    for task in tasks:
        key = task.due_date.strftime("%Y-%m-%d")
        entry = days.setdefault(key, {"date": key, "pending": 0, "completed": 0})
        if task.status == TaskStatus.COMPLETED.value:
            entry["completed"] += 1
        else:
            entry["pending"] += 1

    return [days[key] for key in sorted(days)]
