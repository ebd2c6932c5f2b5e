"""
Billing service.

Maintains the billable item catalogue (the firm's rates) and the items billed
against each case. Every change to a case's billing items recomputes the case's
total_billed inside the same transaction.
"""
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from ..models.database import BillableItem, Case, CaseBillingItem
from ..models.schemas import BillableItemCreate, CaseBillingItemCreate
from .case_service import sum_billing_totals

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


# Billable item catalogue

def list_billable_items(db: Session, order: str = "recent") -> List[BillableItem]:
    """Catalogue items, newest first or alphabetically (order="name")."""
    query = db.query(BillableItem)
    if order == "name":
        return query.order_by(BillableItem.name.asc()).all()
    return query.order_by(BillableItem.created_at.desc(), BillableItem.id.desc()).all()


def get_billable_item(db: Session, item_id: int) -> Optional[BillableItem]:
    return db.query(BillableItem).filter(BillableItem.id == item_id).first()


def create_billable_item(db: Session, values: BillableItemCreate) -> BillableItem:
    try:
        item = BillableItem(
            name=values.name,
            price=to_money(values.price),
            description=values.description
        )
        db.add(item)
        db.commit()
        db.refresh(item)

        logger.info(f"Created billable item '{item.name}' at {item.price}")
        return item

    except Exception as e:
        logger.error(f"Error creating billable item {values.name}: {str(e)}")
        db.rollback()
        raise


def update_billable_item(db: Session, item_id: int, values: BillableItemCreate) -> Optional[BillableItem]:
    """
    Update a catalogue item. Items already billed to cases keep the name and
    price captured when they were billed.
    """
    item = get_billable_item(db, item_id)
    if not item:
        return None

    try:
        item.name = values.name
        item.price = to_money(values.price)
        item.description = values.description
        db.commit()
        db.refresh(item)

        logger.info(f"Updated billable item {item_id}")
        return item

    except Exception as e:
        logger.error(f"Error updating billable item {item_id}: {str(e)}")
        db.rollback()
        raise


def delete_billable_item(db: Session, item_id: int) -> bool:
    item = get_billable_item(db, item_id)
    if not item:
        return False

    try:
        db.delete(item)
        db.commit()

        logger.info(f"Deleted billable item {item_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting billable item {item_id}: {str(e)}")
        db.rollback()
        raise


# Case billing

def recalculate_total_billed(db: Session, case_id: int) -> Optional[Decimal]:
    """Recompute and store total_billed for a case. Returns None if the case does not exist."""
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        return None

    try:
        case.total_billed = sum_billing_totals(db, case_id)
        db.commit()

        logger.info(f"Case {case_id} total_billed recalculated: {case.total_billed}")
        return to_money(case.total_billed)

    except Exception as e:
        logger.error(f"Error recalculating total billed for case {case_id}: {str(e)}")
        db.rollback()
        raise


def list_case_billing_items(db: Session, case_id: int) -> List[CaseBillingItem]:
    return db.query(CaseBillingItem).filter(
        CaseBillingItem.case_id == case_id
    ).order_by(CaseBillingItem.created_at.desc(), CaseBillingItem.id.desc()).all()


def add_billing_item_to_case(
    db: Session,
    case_id: int,
    values: CaseBillingItemCreate
) -> Optional[CaseBillingItem]:
    """
    Bill a catalogue item to a case.

    The item's name and price are copied onto the billing line so later catalogue
    edits do not rewrite history. Returns None when the case does not exist and
    raises ValueError for an unknown catalogue item.
    """
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        return None

    item = get_billable_item(db, values.billable_item_id)
    if not item:
        raise ValueError(f"Billable item {values.billable_item_id} does not exist")

    price = to_money(values.price_override if values.price_override is not None else item.price)

    try:
        billing_item = CaseBillingItem(
            case_id=case_id,
            billable_item_id=item.id,
            name=item.name,
            price_at_time_of_billing=price,
            quantity=values.quantity,
            total=to_money(price * values.quantity)
        )
        db.add(billing_item)
        db.flush()

        case.total_billed = sum_billing_totals(db, case_id)
        db.commit()
        db.refresh(billing_item)

        logger.info(
            f"Billed {values.quantity} x '{item.name}' to case {case_id}; total_billed={case.total_billed}"
        )
        return billing_item

    except Exception as e:
        logger.error(f"Error adding billing item to case {case_id}: {str(e)}")
        db.rollback()
        raise


def delete_case_billing_item(db: Session, billing_item_id: int) -> bool:
    billing_item = db.query(CaseBillingItem).filter(CaseBillingItem.id == billing_item_id).first()
    if not billing_item:
        return False

    case_id = billing_item.case_id
    try:
        db.delete(billing_item)
        db.flush()

        case = db.query(Case).filter(Case.id == case_id).first()
        case.total_billed = sum_billing_totals(db, case_id)
        db.commit()

        logger.info(f"Removed billing item {billing_item_id} from case {case_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting billing item {billing_item_id}: {str(e)}")
        db.rollback()
        raise
