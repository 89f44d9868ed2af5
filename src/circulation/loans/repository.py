"""Persistence for loans and renewals.

Repository methods run inside a session owned by the caller, so the
lifecycle engine can group loan, copy, fine and patron writes into a single
transaction.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import Loan, Renewal
from .schemas import LoanStatus


class LoanRepository:
    """Loan storage operations."""

    def create(self, session: Session, loan: Loan) -> Loan:
        session.add(loan)
        session.flush()
        return loan

    def find(self, session: Session, loan_id: str) -> Optional[Loan]:
        return session.get(Loan, loan_id)

    def find_for_patron(
        self, session: Session, loan_id: str, patron_id: str
    ) -> Optional[Loan]:
        """Get a loan only if it belongs to ``patron_id``."""
        stmt = select(Loan).where(Loan.id == loan_id, Loan.patron_id == patron_id)
        return session.execute(stmt).scalar_one_or_none()

    def update(self, session: Session, loan: Loan) -> Loan:
        loan = session.merge(loan)
        session.flush()
        return loan

    def find_all(
        self,
        session: Session,
        patron_id: Optional[str] = None,
        book_id: Optional[str] = None,
        copy_id: Optional[str] = None,
        status: Optional[LoanStatus] = None,
        open_only: bool = False,
    ) -> list[Loan]:
        """List loans, most recent first."""
        stmt = select(Loan)

        if patron_id:
            stmt = stmt.where(Loan.patron_id == patron_id)
        if book_id:
            stmt = stmt.where(Loan.book_id == book_id)
        if copy_id:
            stmt = stmt.where(Loan.copy_id == copy_id)
        if status:
            stmt = stmt.where(Loan.status == status.value)
        if open_only:
            stmt = stmt.where(Loan.return_date.is_(None))

        stmt = stmt.order_by(Loan.loan_date.desc())
        return list(session.execute(stmt).scalars().all())

    def count_open(self, session: Session, patron_id: str) -> int:
        """Count loans of a patron that have not been returned."""
        return session.execute(
            select(func.count(Loan.id)).where(
                Loan.patron_id == patron_id,
                Loan.return_date.is_(None),
            )
        ).scalar() or 0

    def count_with_status(self, session: Session, patron_id: str, status: LoanStatus) -> int:
        return session.execute(
            select(func.count(Loan.id)).where(
                Loan.patron_id == patron_id,
                Loan.status == status.value,
            )
        ).scalar() or 0

    def add_renewal(self, session: Session, renewal: Renewal) -> Renewal:
        session.add(renewal)
        session.flush()
        return renewal

    def list_renewals(self, session: Session, loan_id: str) -> list[Renewal]:
        stmt = select(Renewal).where(Renewal.loan_id == loan_id).order_by(Renewal.renewed_at)
        return list(session.execute(stmt).scalars().all())
