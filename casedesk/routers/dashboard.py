from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
import logging

from ..auth import get_current_user
from ..database import get_db
from ..models.schemas import (
    ClientDetailResponse, ClientResponse, DashboardResponse, DashboardSummary, TaskResponse
)
from ..services import dashboard_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"], dependencies=[Depends(get_current_user)])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(db: Session = Depends(get_db)):
    """Summary figures, tasks due this week and recently touched cases."""
    return {
        "summary": dashboard_service.dashboard_summary(db),
        "upcoming_tasks": dashboard_service.upcoming_tasks(db),
        "recent_cases": dashboard_service.recent_cases(db),
    }


@router.get("/dashboard/summary", response_model=DashboardSummary)
async def dashboard_summary(db: Session = Depends(get_db)):
    return dashboard_service.dashboard_summary(db)


@router.get("/dashboard/upcoming-tasks", response_model=List[TaskResponse])
async def upcoming_tasks(
    days: int = Query(7, ge=1, le=90),
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return dashboard_service.upcoming_tasks(db, days=days, limit=limit)


@router.get("/clients", response_model=List[ClientResponse], tags=["Clients"])
async def list_clients(db: Session = Depends(get_db)):
    """Clients derived from case records, alphabetically."""
    return dashboard_service.list_clients(db)


@router.get("/clients/{client_name}", response_model=ClientDetailResponse, tags=["Clients"])
async def get_client(client_name: str, db: Session = Depends(get_db)):
    client = dashboard_service.get_client(db, client_name)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client
