"""
Read-only aggregates for the dashboard landing page and the clients view.

Clients are not stored separately: a client is every case sharing the same
client_name.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.database import Case, Task
from ..models.schemas import CaseStatus, ClientStatus, TaskStatus

logger = logging.getLogger(__name__)

ACTIVE_CASE_STATUSES = {CaseStatus.OPEN.value, CaseStatus.PENDING.value}


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def dashboard_summary(db: Session) -> Dict:
    cases = db.query(Case).all()

    total_billed = sum((Decimal(str(c.total_billed or 0)) for c in cases), Decimal("0"))
    total_collected = sum((Decimal(str(c.amount_paid or 0)) for c in cases), Decimal("0"))

    return {
        "active_cases": sum(1 for c in cases if c.status == CaseStatus.OPEN.value),
        "clients": len({c.client_name for c in cases}),
        "total_billed": float(total_billed),
        "total_collected": float(total_collected),
        "pending_payment": float(total_billed - total_collected),
    }


def upcoming_tasks(db: Session, now: Optional[datetime] = None, days: int = 7, limit: int = 5) -> List[Task]:
    """Pending tasks due between now and `days` from now, soonest first."""
    now = now or utcnow()
    return db.query(Task).filter(
        Task.status == TaskStatus.PENDING.value,
        Task.due_date >= now,
        Task.due_date <= now + timedelta(days=days)
    ).order_by(Task.due_date.asc()).limit(limit).all()


def recent_cases(db: Session, limit: int = 5) -> List[Case]:
    """Most recently touched cases (updated_at, falling back to created_at)."""
    touched = func.coalesce(Case.updated_at, Case.created_at)
    return db.query(Case).order_by(touched.desc(), Case.id.desc()).limit(limit).all()


def client_initials(name: str) -> str:
    parts = name.split()
    if not parts:
        return "??"
    if len(parts) == 1:
        return parts[0][0].upper()
    return (parts[0][0] + parts[-1][0]).upper()


def _client_entry(name: str, cases: List[Case]) -> Dict:
    billed = sum((Decimal(str(c.total_billed or 0)) for c in cases), Decimal("0"))
    paid = sum((Decimal(str(c.amount_paid or 0)) for c in cases), Decimal("0"))
    open_count = sum(1 for c in cases if c.status in ACTIVE_CASE_STATUSES)

    return {
        "name": name,
        "initials": client_initials(name),
        "status": ClientStatus.ACTIVE.value if open_count else ClientStatus.INACTIVE.value,
        "case_count": len(cases),
        "open_case_count": open_count,
        "total_billed": float(billed),
        "amount_paid": float(paid),
        "pending_balance": float(billed - paid),
    }


def list_clients(db: Session) -> List[Dict]:
    grouped: Dict[str, List[Case]] = {}
    for case in db.query(Case).order_by(Case.client_name.asc()).all():
        grouped.setdefault(case.client_name, []).append(case)

    return [_client_entry(name, cases) for name, cases in grouped.items()]


def get_client(db: Session, name: str) -> Optional[Dict]:
    cases = db.query(Case).filter(Case.client_name == name).order_by(Case.created_at.desc()).all()
    if not cases:
        return None

    entry = _client_entry(name, cases)
    entry["cases"] = cases
    return entry
