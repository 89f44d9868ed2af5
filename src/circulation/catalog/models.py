"""SQLAlchemy models for the catalog.

Tables:
- books: Cataloged titles and their replacement value
- copies: Physical items of a book
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, utc_timestamp
from .schemas import CopyStatus


class Book(Base):
    """Book model - a cataloged title."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(500))
    genre: Mapped[Optional[str]] = mapped_column(String(50))
    pages: Mapped[Optional[int]] = mapped_column(Integer)

    # Replacement value, the base for the fine cap
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    copies: Mapped[list["Copy"]] = relationship(
        "Copy", back_populates="book", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}')>"


class Copy(Base):
    """Copy model - a physical item that can be lent."""

    __tablename__ = "copies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), default=CopyStatus.AVAILABLE.value, index=True
    )

    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    book: Mapped["Book"] = relationship("Book", back_populates="copies")

    def __repr__(self) -> str:
        return f"<Copy(id={self.id}, book_id={self.book_id}, status={self.status})>"

    @property
    def is_available(self) -> bool:
        """Check if the copy can be lent."""
        return self.status == CopyStatus.AVAILABLE.value
