from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
import logging

from ..auth import get_current_user
from ..database import get_db
from ..models.schemas import (
    BillableItemCreate, BillableItemResponse, CaseBillingItemCreate,
    CaseBillingItemResponse, TotalBilledResponse
)
from ..services import billing_service, case_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Billing"], dependencies=[Depends(get_current_user)])


# Rates catalogue

@router.get("/billing/rates", response_model=List[BillableItemResponse])
async def list_billable_items(
    order: str = Query("recent", pattern="^(recent|name)$"),
    db: Session = Depends(get_db)
):
    """Catalogue of billable items; order=name for pickers."""
    return billing_service.list_billable_items(db, order=order)


@router.post("/billing/rates", response_model=BillableItemResponse, status_code=status.HTTP_201_CREATED)
async def create_billable_item(values: BillableItemCreate, db: Session = Depends(get_db)):
    return billing_service.create_billable_item(db, values)


@router.put("/billing/rates/{item_id}", response_model=BillableItemResponse)
async def update_billable_item(item_id: int, values: BillableItemCreate, db: Session = Depends(get_db)):
    item = billing_service.update_billable_item(db, item_id, values)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Billable item not found")
    return item


@router.delete("/billing/rates/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_billable_item(item_id: int, db: Session = Depends(get_db)):
    if not billing_service.delete_billable_item(db, item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Billable item not found")


# Case billing

@router.get("/cases/{case_id}/billing-items", response_model=List[CaseBillingItemResponse])
async def list_case_billing_items(case_id: int, db: Session = Depends(get_db)):
    if not case_service.get_case(db, case_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return billing_service.list_case_billing_items(db, case_id)


@router.post(
    "/cases/{case_id}/billing-items",
    response_model=CaseBillingItemResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_billing_item_to_case(
    case_id: int,
    values: CaseBillingItemCreate,
    db: Session = Depends(get_db)
):
    """Bill a catalogue item to a case; the case's total is recomputed."""
    try:
        billing_item = billing_service.add_billing_item_to_case(db, case_id, values)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not billing_item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return billing_item


@router.delete("/billing-items/{billing_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_case_billing_item(billing_item_id: int, db: Session = Depends(get_db)):
    if not billing_service.delete_case_billing_item(db, billing_item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Billing item not found")


@router.post("/cases/{case_id}/recalculate-total", response_model=TotalBilledResponse)
async def recalculate_total_billed(case_id: int, db: Session = Depends(get_db)):
    total = billing_service.recalculate_total_billed(db, case_id)
    if total is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return {"case_id": case_id, "total_billed": float(total)}
