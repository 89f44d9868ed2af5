"""Fine manager for administrative fine operations.

Return-time fines are assessed by the loan lifecycle engine. This manager
covers what happens afterwards: manual entry or correction, payment,
cancellation and listing.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..catalog.models import Book
from ..config import Config, get_config
from ..db.sqlite import Database, get_db
from ..exceptions import AlreadyPaidError, InvalidStateError, NotFoundError
from ..loans.repository import LoanRepository
from ..loans.schemas import LoanStatus
from ..patrons.models import Patron
from ..patrons.schemas import PatronStatus
from ..utils import ensure_utc, to_iso, utc_now
from .calculator import FineQuote, quote_fine
from .models import Fine
from .repository import FineRepository
from .schemas import FineCreate, FineStatus, FineTotals

logger = logging.getLogger(__name__)


class FineManager:
    """Manages fines after they are assessed."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize fine manager.

        Args:
            db: Database instance
            config: Fine rate and cap multiplier
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.fines = FineRepository()
        self.loans = LoanRepository()

    def quote(self, days_late: int, item_value: Decimal) -> FineQuote:
        """Fine for ``days_late`` on an item, with the figures behind it."""
        return quote_fine(
            days_late,
            item_value,
            daily_rate=self.config.daily_fine_rate,
            cap_multiplier=self.config.fine_cap_multiplier,
        )

    def add_fine(self, data: FineCreate, now: Optional[datetime] = None) -> Fine:
        """Enter a fine by hand for a returned loan.

        Uses the same rate and cap as return-time assessment. If the loan
        already carries a pending fine, that fine is corrected in place.

        Args:
            data: Loan and days late
            now: Entry time (default: current UTC time)

        Returns:
            The created or corrected fine

        Raises:
            NotFoundError: Unknown loan
            InvalidStateError: Loan not returned, ``days_late`` not positive,
                or the loan's fine is already settled
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            loan = self.loans.find(session, data.loan_id)
            if loan is None:
                raise NotFoundError("Loan", data.loan_id)

            if loan.status != LoanStatus.RETURNED.value:
                raise InvalidStateError(
                    f"Loan {loan.id} must be returned before a fine is entered",
                    details={"loan_id": loan.id, "status": loan.status},
                )

            if data.days_late <= 0:
                raise InvalidStateError(
                    "days_late must be positive", details={"days_late": data.days_late}
                )

            book = session.get(Book, loan.book_id)
            quote = self.quote(data.days_late, book.value)

            fine = self.fines.find_by_loan(session, loan.id)
            if fine is None:
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
                logger.info("Fine %s of %s entered for loan %s", fine.id, fine.value, loan.id)
            elif fine.is_pending:
                fine.value = quote.value
                fine.days_late = quote.days_late
                self.fines.update(session, fine)
                logger.info("Fine %s corrected to %s", fine.id, fine.value)
            else:
                raise InvalidStateError(
                    f"Loan {loan.id} already has a {fine.status} fine",
                    details={"loan_id": loan.id, "fine_id": fine.id},
                )

            session.commit()
            session.refresh(fine)
            session.expunge(fine)
            return fine

    def pay_fine(self, fine_id: str, now: Optional[datetime] = None) -> Fine:
        """Settle a pending fine.

        Paying also returns the patron to ``active``, which lifts a block
        placed when a fine hit its cap.

        Raises:
            NotFoundError: Unknown fine
            AlreadyPaidError: Fine is not pending
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            fine = self.fines.find(session, fine_id)
            if fine is None:
                raise NotFoundError("Fine", fine_id)
            if not fine.is_pending:
                raise AlreadyPaidError(fine_id)

            fine.status = FineStatus.PAID.value
            fine.end_date = to_iso(now)
            self.fines.update(session, fine)

            patron = session.get(Patron, fine.patron_id)
            if patron is not None:
                patron.status = PatronStatus.ACTIVE.value

            logger.info("Fine %s paid; patron %s active", fine_id, fine.patron_id)
            session.commit()
            session.refresh(fine)
            session.expunge(fine)
            return fine

    def cancel_fine(self, fine_id: str, now: Optional[datetime] = None) -> Fine:
        """Waive a pending fine. The patron's standing is left as is.

        Raises:
            NotFoundError: Unknown fine
            AlreadyPaidError: Fine was paid
            InvalidStateError: Fine was already cancelled
        """
        now = ensure_utc(now or utc_now())

        with self.db.get_session() as session:
            fine = self.fines.find(session, fine_id)
            if fine is None:
                raise NotFoundError("Fine", fine_id)
            if fine.status == FineStatus.PAID.value:
                raise AlreadyPaidError(fine_id)
            if fine.status == FineStatus.CANCELLED.value:
                raise InvalidStateError(
                    f"Fine {fine_id} is already cancelled", details={"fine_id": fine_id}
                )

            fine.status = FineStatus.CANCELLED.value
            fine.end_date = to_iso(now)
            self.fines.update(session, fine)

            logger.info("Fine %s cancelled", fine_id)
            session.commit()
            session.refresh(fine)
            session.expunge(fine)
            return fine

    def get_fine(self, fine_id: str) -> Optional[Fine]:
        with self.db.get_session() as session:
            fine = self.fines.find(session, fine_id)
            if fine:
                session.expunge(fine)
            return fine

    def get_fine_for_loan(self, loan_id: str) -> Optional[Fine]:
        with self.db.get_session() as session:
            fine = self.fines.find_by_loan(session, loan_id)
            if fine:
                session.expunge(fine)
            return fine

    def list_fines(
        self,
        patron_id: Optional[str] = None,
        status: Optional[FineStatus] = None,
    ) -> list[Fine]:
        """List fines, newest first.

        Args:
            patron_id: Filter by patron
            status: Filter by status

        Returns:
            List of fines
        """
        with self.db.get_session() as session:
            fines = self.fines.find_all(session, patron_id=patron_id, status=status)
            for fine in fines:
                session.expunge(fine)
            return fines

    def get_totals(self, patron_id: str) -> FineTotals:
        """Pending fine count and amount for a patron."""
        with self.db.get_session() as session:
            return FineTotals(
                patron_id=patron_id,
                pending_count=self.fines.count_pending(session, patron_id),
                pending_value=self.fines.pending_total(session, patron_id),
            )
