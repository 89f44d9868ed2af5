"""Patron manager for borrowers and staff.

Also serves as the patron store for the loan lifecycle engine: standing,
open-loan count and loan history lookups all accept the engine's session.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..exceptions import InvalidStateError, NotFoundError
from .models import Employee, Patron
from .schemas import EmployeeCreate, PatronCreate, PatronStatus, PatronUpdate

logger = logging.getLogger(__name__)


class PatronManager:
    """Manages patrons and employees."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize patron manager.

        Args:
            db: Database instance
        """
        # Loans and fines import this module, so their repositories load late
        from ..fines.repository import FineRepository
        from ..loans.repository import LoanRepository

        self.db = db or get_db()
        self.loans = LoanRepository()
        self.fines = FineRepository()

    # -------------------------------------------------------------------------
    # Patrons
    # -------------------------------------------------------------------------

    def create_patron(self, data: PatronCreate) -> Patron:
        """Register a new patron.

        Args:
            data: Patron creation data

        Returns:
            Created patron

        Raises:
            InvalidStateError: If the document number is already registered
        """
        try:
            with self.db.get_session() as session:
                patron = Patron(
                    name=data.name,
                    document=data.document,
                    email=data.email,
                    phone=data.phone,
                )
                session.add(patron)
                session.commit()
                session.refresh(patron)
                session.expunge(patron)
        except IntegrityError as e:
            raise InvalidStateError(
                f"A patron with document {data.document} already exists",
                details={"document": data.document},
            ) from e

        logger.info("Patron %s registered", patron.id)
        return patron

    def get_patron(self, patron_id: str, session: Optional[Session] = None) -> Optional[Patron]:
        """Get a patron by ID."""

        def _get(s: Session) -> Optional[Patron]:
            return s.get(Patron, patron_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                patron = _get(s)
                if patron:
                    s.expunge(patron)
                return patron

    def get_patron_by_document(self, document: str) -> Optional[Patron]:
        """Get a patron by document number."""
        with self.db.get_session() as session:
            patron = session.execute(
                select(Patron).where(Patron.document == document)
            ).scalar_one_or_none()
            if patron:
                session.expunge(patron)
            return patron

    def list_patrons(self, status: Optional[PatronStatus] = None) -> list[Patron]:
        """List patrons, optionally by status."""
        with self.db.get_session() as session:
            stmt = select(Patron).order_by(Patron.name)
            if status:
                stmt = stmt.where(Patron.status == status.value)

            patrons = session.execute(stmt).scalars().all()
            for p in patrons:
                session.expunge(p)
            return list(patrons)

    def update_patron(self, patron_id: str, data: PatronUpdate) -> Optional[Patron]:
        """Update a patron.

        Args:
            patron_id: Patron ID
            data: Update data

        Returns:
            Updated patron or None
        """
        with self.db.get_session() as session:
            patron = session.get(Patron, patron_id)
            if not patron:
                return None

            update_data = data.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                if field == "status" and value:
                    patron.status = value.value
                elif hasattr(patron, field):
                    setattr(patron, field, value)

            patron.updated_at = datetime.now(timezone.utc).isoformat()
            session.commit()
            session.refresh(patron)
            session.expunge(patron)
            return patron

    def set_blocked(
        self,
        patron_id: str,
        blocked: bool,
        session: Optional[Session] = None,
    ) -> Patron:
        """Block or unblock a patron.

        Unblocking returns the patron to ``active``.

        Raises:
            NotFoundError: If the patron does not exist
        """

        def _set(s: Session) -> Patron:
            patron = s.get(Patron, patron_id)
            if patron is None:
                raise NotFoundError("Patron", patron_id)
            patron.status = (PatronStatus.BLOCKED if blocked else PatronStatus.ACTIVE).value
            s.flush()
            logger.info("Patron %s %s", patron_id, "blocked" if blocked else "unblocked")
            return patron

        if session:
            return _set(session)
        else:
            with self.db.get_session() as s:
                patron = _set(s)
                s.commit()
                s.refresh(patron)
                s.expunge(patron)
                return patron

    # -------------------------------------------------------------------------
    # Loan history
    # -------------------------------------------------------------------------

    def count_active_loans(self, patron_id: str, session: Optional[Session] = None) -> int:
        """Count loans of the patron that have not been returned."""
        if session:
            return self.loans.count_open(session, patron_id)
        with self.db.get_session() as s:
            return self.loans.count_open(s, patron_id)

    def has_overdue_history(self, patron_id: str, session: Optional[Session] = None) -> bool:
        """Check if any loan of the patron was closed as overdue."""
        from ..loans.schemas import LoanStatus

        if session:
            return self.loans.count_with_status(session, patron_id, LoanStatus.OVERDUE) > 0
        with self.db.get_session() as s:
            return self.loans.count_with_status(s, patron_id, LoanStatus.OVERDUE) > 0

    def has_pending_fines(self, patron_id: str, session: Optional[Session] = None) -> bool:
        """Check if the patron owes any fine."""
        if session:
            return self.fines.count_pending(session, patron_id) > 0
        with self.db.get_session() as s:
            return self.fines.count_pending(s, patron_id) > 0

    # -------------------------------------------------------------------------
    # Employees
    # -------------------------------------------------------------------------

    def create_employee(self, data: EmployeeCreate) -> Employee:
        """Register a new employee.

        Raises:
            InvalidStateError: If the document number is already registered
        """
        try:
            with self.db.get_session() as session:
                employee = Employee(
                    name=data.name,
                    document=data.document,
                    email=data.email,
                    phone=data.phone,
                )
                session.add(employee)
                session.commit()
                session.refresh(employee)
                session.expunge(employee)
        except IntegrityError as e:
            raise InvalidStateError(
                f"An employee with document {data.document} already exists",
                details={"document": data.document},
            ) from e
        return employee

    def get_employee(
        self, employee_id: str, session: Optional[Session] = None
    ) -> Optional[Employee]:
        """Get an employee by ID."""

        def _get(s: Session) -> Optional[Employee]:
            return s.get(Employee, employee_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                employee = _get(s)
                if employee:
                    s.expunge(employee)
                return employee

    def list_employees(self) -> list[Employee]:
        """List all employees."""
        with self.db.get_session() as session:
            employees = session.execute(select(Employee).order_by(Employee.name)).scalars().all()
            for e in employees:
                session.expunge(e)
            return list(employees)

