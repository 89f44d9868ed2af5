"""Persistence for fines.

Like the loan repository, every method works inside the caller's session.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..utils import to_money
from .models import Fine
from .schemas import FineStatus


class FineRepository:
    """Fine storage operations."""

    def create(self, session: Session, fine: Fine) -> Fine:
        session.add(fine)
        session.flush()
        return fine

    def find(self, session: Session, fine_id: str) -> Optional[Fine]:
        return session.get(Fine, fine_id)

    def find_by_loan(self, session: Session, loan_id: str) -> Optional[Fine]:
        return session.execute(
            select(Fine).where(Fine.loan_id == loan_id)
        ).scalar_one_or_none()

    def update(self, session: Session, fine: Fine) -> Fine:
        fine = session.merge(fine)
        session.flush()
        return fine

    def find_all(
        self,
        session: Session,
        patron_id: Optional[str] = None,
        status: Optional[FineStatus] = None,
    ) -> list[Fine]:
        stmt = select(Fine)
        if patron_id:
            stmt = stmt.where(Fine.patron_id == patron_id)
        if status:
            stmt = stmt.where(Fine.status == status.value)
        return list(session.execute(stmt.order_by(Fine.start_date.desc())).scalars().all())

    def count_pending(self, session: Session, patron_id: str) -> int:
        return session.execute(
            select(func.count(Fine.id)).where(
                Fine.patron_id == patron_id,
                Fine.status == FineStatus.PENDING.value,
            )
        ).scalar() or 0

    def pending_total(self, session: Session, patron_id: str) -> Decimal:
        total = session.execute(
            select(func.sum(Fine.value)).where(
                Fine.patron_id == patron_id,
                Fine.status == FineStatus.PENDING.value,
            )
        ).scalar()
        return to_money(total) if total is not None else Decimal("0.00")
