"""SQLAlchemy models for fines.

Tables:
- fines: Penalty for a late loan (at most one per loan)
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, utc_timestamp
from ..utils import from_iso
from .schemas import FineStatus

if TYPE_CHECKING:
    from ..loans.models import Loan


class Fine(Base):
    """Fine model - penalty for returning a loan late."""

    __tablename__ = "fines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    loan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("loans.id"), nullable=False, unique=True
    )
    patron_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patrons.id"), nullable=False, index=True
    )

    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    days_late: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=FineStatus.PENDING.value, index=True
    )

    # Dates (ISO timestamps, UTC)
    start_date: Mapped[str] = mapped_column(String(32), nullable=False)
    end_date: Mapped[Optional[str]] = mapped_column(String(32))

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    loan: Mapped["Loan"] = relationship("Loan")

    def __repr__(self) -> str:
        return f"<Fine(id={self.id}, loan_id={self.loan_id}, value={self.value}, status={self.status})>"

    @property
    def started_at(self) -> datetime:
        return from_iso(self.start_date)

    @property
    def ended_at(self) -> Optional[datetime]:
        return from_iso(self.end_date)

    @property
    def is_pending(self) -> bool:
        return self.status == FineStatus.PENDING.value
