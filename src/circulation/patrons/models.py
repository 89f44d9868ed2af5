"""SQLAlchemy models for people.

Tables:
- patrons: Borrowers
- employees: Staff who process loans
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utc_timestamp
from .schemas import EmployeeStatus, PatronStatus


class Patron(Base):
    """Patron model - a library borrower."""

    __tablename__ = "patrons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    document: Mapped[str] = mapped_column(String(11), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(11))
    status: Mapped[str] = mapped_column(
        String(20), default=PatronStatus.ACTIVE.value, index=True
    )

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    def __repr__(self) -> str:
        return f"<Patron(id={self.id}, name='{self.name}', status={self.status})>"

    @property
    def blocked(self) -> bool:
        """Check if the patron is blocked from borrowing."""
        return self.status == PatronStatus.BLOCKED.value


class Employee(Base):
    """Employee model - staff member recorded on loan operations."""

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    document: Mapped[str] = mapped_column(String(11), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(11))
    status: Mapped[str] = mapped_column(String(20), default=EmployeeStatus.ACTIVE.value)

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name='{self.name}')>"

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE.value
