"""Loan lifecycle engine.

Decides whether a loan may be created, computes due dates, and moves loans
through their states:

    in_progress -> renewed -> renewed ...
    in_progress | renewed -> returned
    in_progress | renewed -> overdue   (returned with a fine at its cap)

Each operation runs in a single database session, so the loan, the copy,
any fine and the patron's standing are committed together or not at all.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..catalog.manager import CatalogManager
from ..catalog.models import Book
from ..catalog.schemas import CopyStatus
from ..config import Config, get_config
from ..db.sqlite import Database, get_db
from ..exceptions import (
    AlreadyReturnedError,
    CirculationError,
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    PolicyViolationError,
    UnauthorizedError,
)
from ..fines.calculator import quote_fine
from ..fines.models import Fine
from ..fines.repository import FineRepository
from ..fines.schemas import FineStatus
from ..patrons.manager import PatronManager
from ..patrons.models import Patron
from ..utils import add_business_days, ensure_utc, to_iso, utc_now, whole_days_late
from .models import Loan, Renewal
from .repository import LoanRepository
from .schemas import LoanStatus, LoanSummary, OverdueReport

logger = logging.getLogger(__name__)


class LoanManager:
    """Manages the loan lifecycle."""

    def __init__(
        self,
        db: Optional[Database] = None,
        config: Optional[Config] = None,
        catalog: Optional[CatalogManager] = None,
        patrons: Optional[PatronManager] = None,
    ):
        """Initialize loan manager.

        Args:
            db: Database instance
            config: Lending policy values (limits, renewal days, fine rate)
            catalog: Catalog store, defaults to one on ``db``
            patrons: Patron store, defaults to one on ``db``
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.catalog = catalog or CatalogManager(self.db)
        self.patrons = patrons or PatronManager(self.db)
        self.loans = LoanRepository()
        self.fines = FineRepository()

    def _reject(self, error: CirculationError) -> CirculationError:
        logger.warning("Rejected: %s", error.message)
        return error

    def _require_employee(self, session: Session, employee_id: str) -> None:
        employee = self.patrons.get_employee(employee_id, session=session)
        if employee is None or not employee.is_active:
            raise self._reject(
                UnauthorizedError(
                    f"Employee {employee_id} may not process loans",
                    details={"employee_id": employee_id},
                )
            )

    @staticmethod
    def _detach(session: Session, loan: Loan) -> Loan:
        session.commit()
        session.refresh(loan)
        session.expunge(loan)
        return loan

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def due_date_for(self, start: datetime) -> datetime:
        """Due date of a loan made at ``start``."""
        return add_business_days(ensure_utc(start), self.config.loan_business_days)

    def create_loan(
        self,
        patron_id: str,
        copy_id: str,
        employee_id: str,
        now: Optional[datetime] = None,
    ) -> Loan:
        """Lend a copy to a patron.

        Checks run in order and the first failure is raised:

        1. the patron exists
        2. the copy exists and is available
        3. the patron is under the open-loan limit (a patron with a pending
           fine is held to a lower limit)
        4. the patron has no loan closed as overdue
        5. the patron is not blocked
        6. the employee exists and is active

        Args:
            patron_id: Borrowing patron
            copy_id: Copy to lend
            employee_id: Employee processing the loan
            now: Time of the loan (default: current UTC time)

        Returns:
            The new loan, ``in_progress``

        Raises:
            NotFoundError: Unknown patron
            InvalidStateError: Copy missing or not available
            LimitExceededError: Too many open loans
            PolicyViolationError: Late-return history or blocked patron
            UnauthorizedError: Unknown or inactive employee
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            patron = self.patrons.get_patron(patron_id, session=session)
            if patron is None:
                raise self._reject(NotFoundError("Patron", patron_id))

            copy = self.catalog.get_copy(copy_id, session=session)
            if copy is None or not copy.is_available:
                raise self._reject(
                    InvalidStateError(
                        f"Copy {copy_id} is not available for loan",
                        details={"copy_id": copy_id, "status": copy.status if copy else None},
                    )
                )

            open_loans = self.patrons.count_active_loans(patron_id, session=session)
            if open_loans >= self.config.max_active_loans:
                raise self._reject(LimitExceededError(patron_id, self.config.max_active_loans))

            if (
                open_loans >= self.config.max_loans_with_pending_fines
                and self.patrons.has_pending_fines(patron_id, session=session)
            ):
                raise self._reject(
                    LimitExceededError(
                        patron_id,
                        self.config.max_loans_with_pending_fines,
                        message=(
                            f"Patron {patron_id} has pending fines and may hold only "
                            f"{self.config.max_loans_with_pending_fines} loan(s) at a time"
                        ),
                    )
                )

            if self.patrons.has_overdue_history(patron_id, session=session):
                raise self._reject(
                    PolicyViolationError(
                        f"Patron {patron_id} has a history of late returns",
                        details={"patron_id": patron_id},
                    )
                )

            if patron.blocked:
                raise self._reject(
                    PolicyViolationError(
                        f"Patron {patron_id} is blocked", details={"patron_id": patron_id}
                    )
                )

            self._require_employee(session, employee_id)

            if not self.catalog.claim_copy(copy_id, session):
                raise self._reject(
                    InvalidStateError(
                        f"Copy {copy_id} is not available for loan",
                        details={"copy_id": copy_id},
                    )
                )

            loan = self.loans.create(
                session,
                Loan(
                    patron_id=patron_id,
                    copy_id=copy_id,
                    book_id=copy.book_id,
                    employee_id=employee_id,
                    status=LoanStatus.IN_PROGRESS.value,
                    loan_date=to_iso(now),
                    due_date=to_iso(self.due_date_for(now)),
                    renewal_count=0,
                ),
            )
            logger.info(
                "Loan %s created: copy %s to patron %s, due %s",
                loan.id, copy_id, patron_id, loan.due_date,
            )
            return self._detach(session, loan)

    def renew_loan(
        self,
        loan_id: str,
        employee_id: str,
        patron_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Loan:
        """Extend an open loan by the configured number of calendar days.

        The new due date counts from ``now``, not from the old due date.
        Renewals are not capped.

        Args:
            loan_id: Loan to renew
            employee_id: Employee processing the renewal
            patron_id: When given, the loan must belong to this patron
            now: Time of the renewal (default: current UTC time)

        Returns:
            The renewed loan

        Raises:
            NotFoundError: Unknown loan
            UnauthorizedError: Loan of another patron, or unknown employee
            AlreadyReturnedError: Loan already closed
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            loan = self.loans.find(session, loan_id)
            if loan is None:
                raise self._reject(NotFoundError("Loan", loan_id))

            if patron_id is not None and loan.patron_id != patron_id:
                raise self._reject(
                    UnauthorizedError(
                        f"Loan {loan_id} does not belong to patron {patron_id}",
                        details={"loan_id": loan_id, "patron_id": patron_id},
                    )
                )

            if not loan.is_open:
                raise self._reject(AlreadyReturnedError(loan_id))

            self._require_employee(session, employee_id)

            previous_due = loan.due_date
            loan.due_date = to_iso(now + timedelta(days=self.config.renewal_days))
            loan.status = LoanStatus.RENEWED.value
            loan.employee_id = employee_id
            loan.renewal_count = (loan.renewal_count or 0) + 1
            self.loans.update(session, loan)

            self.loans.add_renewal(
                session,
                Renewal(
                    loan_id=loan.id,
                    employee_id=employee_id,
                    renewed_at=to_iso(now),
                    previous_due_date=previous_due,
                    new_due_date=loan.due_date,
                ),
            )
            logger.info("Loan %s renewed until %s", loan_id, loan.due_date)
            return self._detach(session, loan)

    def return_loan(
        self,
        employee_id: str,
        patron_id: str,
        loan_id: str,
        now: Optional[datetime] = None,
    ) -> Loan:
        """Take a copy back from a patron.

        A late return creates a pending fine. When the fine reaches its cap
        the patron is blocked and the loan is closed as ``overdue`` instead of
        ``returned``. The copy becomes available again either way.

        Args:
            employee_id: Employee processing the return
            patron_id: Patron returning the copy
            loan_id: Loan being closed
            now: Time of the return (default: current UTC time)

        Returns:
            The closed loan

        Raises:
            NotFoundError: No such loan for this patron
            AlreadyReturnedError: Loan already closed
            UnauthorizedError: Unknown or inactive employee
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            loan = self.loans.find_for_patron(session, loan_id, patron_id)
            if loan is None:
                raise self._reject(
                    NotFoundError(
                        "Loan",
                        loan_id,
                        message=f"Loan {loan_id} not found for patron {patron_id}",
                    )
                )

            if not loan.is_open:
                raise self._reject(AlreadyReturnedError(loan_id))

            self._require_employee(session, employee_id)

            loan.return_date = to_iso(now)
            loan.employee_id = employee_id
            loan.status = LoanStatus.RETURNED.value

            days_late = whole_days_late(loan.due_at, now)
            if days_late > 0:
                book = session.get(Book, loan.book_id)
                quote = quote_fine(
                    days_late,
                    book.value,
                    daily_rate=self.config.daily_fine_rate,
                    cap_multiplier=self.config.fine_cap_multiplier,
                )
                fine = self.fines.create(
                    session,
                    Fine(
                        loan_id=loan.id,
                        patron_id=loan.patron_id,
                        value=quote.value,
                        days_late=quote.days_late,
                        status=FineStatus.PENDING.value,
                        start_date=to_iso(now),
                    ),
                )
                logger.info(
                    "Fine %s of %s assessed on loan %s (%d days late)",
                    fine.id, fine.value, loan_id, days_late,
                )

                if quote.capped:
                    self.patrons.set_blocked(loan.patron_id, True, session=session)
                    loan.status = LoanStatus.OVERDUE.value

            self.catalog.update_copy_status(loan.copy_id, CopyStatus.AVAILABLE, session=session)
            self.loans.update(session, loan)

            logger.info("Loan %s closed as %s", loan_id, loan.status)
            return self._detach(session, loan)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get a loan by ID.

        Args:
            loan_id: Loan ID

        Returns:
            Loan or None
        """
        with self.db.get_session() as session:
            loan = self.loans.find(session, loan_id)
            if loan:
                session.expunge(loan)
            return loan

    def list_loans(
        self,
        patron_id: Optional[str] = None,
        book_id: Optional[str] = None,
        status: Optional[LoanStatus] = None,
        open_only: bool = False,
    ) -> list[Loan]:
        """List loans with optional filters.

        Args:
            patron_id: Filter by patron
            book_id: Filter by book
            status: Filter by status
            open_only: Only loans not yet returned

        Returns:
            List of loans, most recent first
        """
        with self.db.get_session() as session:
            loans = self.loans.find_all(
                session,
                patron_id=patron_id,
                book_id=book_id,
                status=status,
                open_only=open_only,
            )
            for loan in loans:
                session.expunge(loan)
            return loans

    def list_renewals(self, loan_id: str) -> list[Renewal]:
        """Renewal history of a loan, oldest first."""
        with self.db.get_session() as session:
            renewals = self.loans.list_renewals(session, loan_id)
            for renewal in renewals:
                session.expunge(renewal)
            return renewals

    def get_overdue_loans(self, now: Optional[datetime] = None) -> OverdueReport:
        """Report open loans that are past their due date.

        This is the computed overdue predicate; it does not change any
        loan's status.
        """
        now = ensure_utc(now or utc_now())
        summaries = []
        oldest_days = 0

        with self.db.get_session() as session:
            for loan in self.loans.find_all(session, open_only=True):
                if not loan.is_overdue_at(now):
                    continue

                patron = session.get(Patron, loan.patron_id)
                book = session.get(Book, loan.book_id)
                days = loan.days_overdue_at(now)
                summaries.append(
                    LoanSummary(
                        id=loan.id,
                        patron_name=patron.name if patron else "?",
                        book_title=book.title if book else "?",
                        status=LoanStatus(loan.status),
                        due_date=loan.due_at,
                        days_overdue=days,
                    )
                )
                oldest_days = max(oldest_days, days)

        summaries.sort(key=lambda s: s.days_overdue, reverse=True)
        return OverdueReport(
            loans=summaries,
            total_overdue=len(summaries),
            oldest_overdue_days=oldest_days,
        )
