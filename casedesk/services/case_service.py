from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.database import Case, CaseBillingItem, Task
from ..models.schemas import CaseCreate, CaseUpdate

logger = logging.getLogger(__name__)


def sum_billing_totals(db: Session, case_id: int) -> Decimal:
    """Sum of the billing item totals recorded against a case."""
    total = db.query(func.coalesce(func.sum(CaseBillingItem.total), 0)).filter(
        CaseBillingItem.case_id == case_id
    ).scalar()
    return Decimal(str(total)).quantize(Decimal("0.01"))


def list_cases(db: Session) -> List[Case]:
    """All cases, newest first."""
    return db.query(Case).order_by(Case.created_at.desc(), Case.id.desc()).all()


def list_case_options(db: Session) -> List[Case]:
    """Cases ordered by number, for pickers."""
    return db.query(Case).order_by(Case.case_number.asc()).all()


def get_case(db: Session, case_id: int) -> Optional[Case]:
    """
    Fetch a case, repairing its stored total_billed if it drifted from the
    billing items it owns.
    """
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        return None

    computed = sum_billing_totals(db, case_id)
    if Decimal(str(case.total_billed or 0)) != computed:
        logger.warning(
            f"Case {case_id} total_billed out of sync ({case.total_billed} != {computed}); repairing"
        )
        try:
            case.total_billed = computed
            db.commit()
            db.refresh(case)
        except Exception as e:
            logger.error(f"Error repairing total_billed for case {case_id}: {str(e)}")
            db.rollback()
            raise

    return case


def create_case(db: Session, values: CaseCreate) -> Case:
    """Open a new case; billing starts at zero."""
    try:
        case = Case(**values.model_dump(), total_billed=Decimal("0"))

        db.add(case)
        db.commit()
        db.refresh(case)

        logger.info(f"Created case {case.case_number} (id={case.id})")
        return case

    except Exception as e:
        logger.error(f"Error creating case {values.case_number}: {str(e)}")
        db.rollback()
        raise


def update_case(db: Session, case_id: int, values: CaseUpdate) -> Optional[Case]:
    """Update the editable fields of a case. total_billed is never written here."""
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        return None

    try:
        for field, value in values.model_dump().items():
            setattr(case, field, value)

        # Keep denormalized labels on linked tasks and documents current
        display_name = case.display_name
        for task in case.tasks:
            task.case_name = display_name
        for document in case.documents:
            document.case_name = display_name

        db.commit()
        db.refresh(case)

        logger.info(f"Updated case {case.case_number} (id={case_id})")
        return case

    except Exception as e:
        logger.error(f"Error updating case {case_id}: {str(e)}")
        db.rollback()
        raise


def delete_case(db: Session, case_id: int) -> bool:
    """Delete a case with its billing items. Linked tasks and documents are detached."""
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        return False

    try:
        db.delete(case)
        db.commit()

        logger.info(f"Deleted case {case_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting case {case_id}: {str(e)}")
        db.rollback()
        raise


def list_case_tasks(db: Session, case_id: int) -> List[Task]:
    """Tasks attached to a case, soonest due first."""
    return db.query(Task).filter(Task.case_id == case_id).order_by(Task.due_date.asc()).all()
