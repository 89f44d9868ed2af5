"""SQLAlchemy models for loans.

Tables:
- loans: One copy lent to one patron
- renewals: History of due-date extensions
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..catalog.models import Book, Copy
from ..db.models import Base, generate_uuid, utc_timestamp
from ..patrons.models import Employee, Patron
from ..utils import ensure_utc, from_iso, utc_now, whole_days_late
from .schemas import RENEWABLE_STATUSES, LoanStatus


class Loan(Base):
    """Loan model - tracks one copy lent to a patron.

    ``return_date`` is null exactly while the loan is open
    (``in_progress`` or ``renewed``).
    """

    __tablename__ = "loans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    patron_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patrons.id"), nullable=False, index=True
    )
    copy_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("copies.id"), nullable=False, index=True
    )
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id"), nullable=False, index=True
    )
    # Last employee who processed the loan
    employee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("employees.id"), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=LoanStatus.IN_PROGRESS.value, index=True
    )

    # Dates (ISO timestamps, UTC)
    loan_date: Mapped[str] = mapped_column(String(32), nullable=False)
    due_date: Mapped[str] = mapped_column(String(32), nullable=False)
    return_date: Mapped[Optional[str]] = mapped_column(String(32))

    renewal_count: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    # Relationships
    patron: Mapped["Patron"] = relationship("Patron")
    copy: Mapped["Copy"] = relationship("Copy")
    book: Mapped["Book"] = relationship("Book")
    employee: Mapped["Employee"] = relationship("Employee")
    renewals: Mapped[list["Renewal"]] = relationship(
        "Renewal", back_populates="loan", order_by="Renewal.renewed_at"
    )

    def __repr__(self) -> str:
        return f"<Loan(id={self.id}, copy_id={self.copy_id}, status={self.status})>"

    @property
    def loaned_at(self) -> datetime:
        return from_iso(self.loan_date)

    @property
    def due_at(self) -> datetime:
        return from_iso(self.due_date)

    @property
    def returned_at(self) -> Optional[datetime]:
        return from_iso(self.return_date)

    @property
    def is_open(self) -> bool:
        """Check if the copy is still out."""
        return self.return_date is None and self.status in {s.value for s in RENEWABLE_STATUSES}

    def is_overdue_at(self, now: datetime) -> bool:
        """Check if the loan is open and past its due date at ``now``."""
        return self.return_date is None and ensure_utc(now) > self.due_at

    @property
    def is_overdue(self) -> bool:
        """Check if the loan is open and past its due date now."""
        return self.is_overdue_at(utc_now())

    def days_overdue_at(self, now: datetime) -> int:
        """Whole days past due at ``now`` (0 if not overdue or closed)."""
        if not self.is_overdue_at(now):
            return 0
        return whole_days_late(self.due_at, now)


class Renewal(Base):
    """Renewal model - one due-date extension of a loan."""

    __tablename__ = "renewals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    loan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("loans.id"), nullable=False, index=True
    )
    employee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("employees.id"), nullable=False
    )
    renewed_at: Mapped[str] = mapped_column(String(32), nullable=False)
    previous_due_date: Mapped[str] = mapped_column(String(32), nullable=False)
    new_due_date: Mapped[str] = mapped_column(String(32), nullable=False)

    loan: Mapped["Loan"] = relationship("Loan", back_populates="renewals")

    def __repr__(self) -> str:
        return f"<Renewal(loan_id={self.loan_id}, new_due_date={self.new_due_date})>"
