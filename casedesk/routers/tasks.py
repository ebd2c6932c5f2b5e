from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..auth import get_current_user
from ..database import get_db
from ..models.schemas import (
    TaskCreate, TaskUpdate, TaskResponse, TaskPriority, TaskStatus, TaskCalendar,
    TaskTypeCreate, TaskTypeResponse, to_naive_utc
)
from ..services import task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"], dependencies=[Depends(get_current_user)])
types_router = APIRouter(prefix="/task-types", tags=["Task Types"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[TaskPriority] = None,
    case_id: Optional[int] = None,
    due_on: Optional[date] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    db: Session = Depends(get_db)
):
    """Tasks ordered by due date. due_on selects a single calendar day."""
    return task_service.list_tasks(
        db,
        status=status_filter.value if status_filter else None,
        priority=priority.value if priority else None,
        case_id=case_id,
        due_on=due_on,
        due_from=to_naive_utc(due_from),
        due_to=to_naive_utc(due_to)
    )


@router.get("/calendar", response_model=TaskCalendar)
async def task_calendar(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Pending/completed counts per day, for calendar markers."""
    return {"year": year, "month": month, "days": task_service.task_calendar(db, year, month)}


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(values: TaskCreate, db: Session = Depends(get_db)):
    try:
        return task_service.create_task(db, values)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, db: Session = Depends(get_db)):
    task = task_service.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(task_id: int, values: TaskUpdate, db: Session = Depends(get_db)):
    try:
        task = task_service.update_task(db, task_id, values)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.post("/{task_id}/toggle-status", response_model=TaskResponse)
async def toggle_task_status(task_id: int, db: Session = Depends(get_db)):
    task = task_service.toggle_task_status(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, db: Session = Depends(get_db)):
    if not task_service.delete_task(db, task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


# Task types

@types_router.get("", response_model=List[TaskTypeResponse])
async def list_task_types(db: Session = Depends(get_db)):
    return task_service.list_task_types(db)


@types_router.post("", response_model=TaskTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_task_type(values: TaskTypeCreate, db: Session = Depends(get_db)):
    try:
        return task_service.create_task_type(db, values)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@types_router.put("/{type_id}", response_model=TaskTypeResponse)
async def update_task_type(type_id: int, values: TaskTypeCreate, db: Session = Depends(get_db)):
    try:
        task_type = task_service.update_task_type(db, type_id, values)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not task_type:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task type not found")
    return task_type


@types_router.delete("/{type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task_type(type_id: int, db: Session = Depends(get_db)):
    if not task_service.delete_task_type(db, type_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task type not found")
