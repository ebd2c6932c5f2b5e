from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from ..auth import get_current_user
from ..database import get_db
from ..models.schemas import CaseCreate, CaseUpdate, CaseResponse, CaseOption, TaskResponse
from ..services import case_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cases", tags=["Cases"], dependencies=[Depends(get_current_user)])


def _case_or_404(db: Session, case_id: int):
    case = case_service.get_case(db, case_id)
    if not case:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return case


@router.get("", response_model=List[CaseResponse])
async def list_cases(db: Session = Depends(get_db)):
    """All cases, newest first."""
    return case_service.list_cases(db)


@router.get("/options", response_model=List[CaseOption])
async def list_case_options(db: Session = Depends(get_db)):
    """Minimal case list for pickers, ordered by case number."""
    return case_service.list_case_options(db)


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def create_case(values: CaseCreate, db: Session = Depends(get_db)):
    try:
        return case_service.create_case(db, values)
    except Exception as e:
        logger.error(f"Error creating case: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create case"
        )


@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(case_id: int, db: Session = Depends(get_db)):
    return _case_or_404(db, case_id)


@router.put("/{case_id}", response_model=CaseResponse)
async def update_case(case_id: int, values: CaseUpdate, db: Session = Depends(get_db)):
    case = case_service.update_case(db, case_id, values)
    if not case:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return case


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_case(case_id: int, db: Session = Depends(get_db)):
    if not case_service.delete_case(db, case_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")


@router.get("/{case_id}/tasks", response_model=List[TaskResponse])
async def list_case_tasks(case_id: int, db: Session = Depends(get_db)):
    _case_or_404(db, case_id)
    return case_service.list_case_tasks(db, case_id)
