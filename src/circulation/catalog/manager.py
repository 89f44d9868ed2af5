"""Catalog manager for books and copies.

Also serves as the catalog store for the loan lifecycle engine: the
``session`` argument lets the engine run lookups and copy status changes
inside its own transaction.
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..db.sqlite import Database, get_db
from ..exceptions import NotFoundError
from .models import Book, Copy
from .schemas import BookCreate, CopyStatus, InventoryLine

logger = logging.getLogger(__name__)


class CatalogManager:
    """Manages books and their copies."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize catalog manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    # -------------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------------

    def create_book(self, data: BookCreate, copies: int = 0) -> Book:
        """Create a new book, optionally with a number of copies.

        Args:
            data: Book creation data
            copies: Copies to register along with the book

        Returns:
            Created book
        """
        with self.db.get_session() as session:
            book = Book(
                title=data.title,
                author=data.author,
                publisher=data.publisher,
                genre=data.genre,
                pages=data.pages,
                value=data.value,
            )
            session.add(book)
            session.flush()

            for _ in range(copies):
                session.add(Copy(book_id=book.id))

            session.commit()
            session.refresh(book)
            session.expunge(book)
            logger.info("Book %s created with %d copies", book.id, copies)
            return book

    def get_book(self, book_id: str, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ID."""

        def _get(s: Session) -> Optional[Book]:
            return s.get(Book, book_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                book = _get(s)
                if book:
                    s.expunge(book)
                return book

    def list_books(self) -> list[Book]:
        """List all books ordered by title."""
        with self.db.get_session() as session:
            books = session.execute(select(Book).order_by(Book.title)).scalars().all()
            for book in books:
                session.expunge(book)
            return list(books)

    # -------------------------------------------------------------------------
    # Copies
    # -------------------------------------------------------------------------

    def add_copies(self, book_id: str, count: int = 1) -> list[Copy]:
        """Register new copies of a book.

        Args:
            book_id: Book ID
            count: Number of copies to add

        Returns:
            The new copies

        Raises:
            NotFoundError: If the book does not exist
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        with self.db.get_session() as session:
            if session.get(Book, book_id) is None:
                raise NotFoundError("Book", book_id)

            copies = [Copy(book_id=book_id) for _ in range(count)]
            session.add_all(copies)
            session.commit()
            for copy in copies:
                session.refresh(copy)
                session.expunge(copy)
            return copies

    def get_copy(self, copy_id: str, session: Optional[Session] = None) -> Optional[Copy]:
        """Get a copy by ID."""

        def _get(s: Session) -> Optional[Copy]:
            return s.get(Copy, copy_id)

        if session:
            return _get(session)
        else:
            with self.db.get_session() as s:
                copy = _get(s)
                if copy:
                    s.expunge(copy)
                return copy

    def list_copies(
        self,
        book_id: Optional[str] = None,
        status: Optional[CopyStatus] = None,
    ) -> list[Copy]:
        """List copies with optional filters.

        Args:
            book_id: Filter by book
            status: Filter by status

        Returns:
            List of copies
        """
        with self.db.get_session() as session:
            stmt = select(Copy)
            if book_id:
                stmt = stmt.where(Copy.book_id == book_id)
            if status:
                stmt = stmt.where(Copy.status == status.value)

            copies = session.execute(stmt.order_by(Copy.created_at)).scalars().all()
            for copy in copies:
                session.expunge(copy)
            return list(copies)

    def update_copy_status(
        self,
        copy_id: str,
        status: CopyStatus,
        session: Optional[Session] = None,
    ) -> Copy:
        """Set the status of a copy.

        Raises:
            NotFoundError: If the copy does not exist
        """

        def _update(s: Session) -> Copy:
            copy = s.get(Copy, copy_id)
            if copy is None:
                raise NotFoundError("Copy", copy_id)
            copy.status = status.value
            s.flush()
            return copy

        if session:
            return _update(session)
        else:
            with self.db.get_session() as s:
                copy = _update(s)
                s.commit()
                s.refresh(copy)
                s.expunge(copy)
                return copy

    def claim_copy(self, copy_id: str, session: Session) -> bool:
        """Move a copy from available to loaned.

        The update only matches while the copy is still available, so of two
        transactions claiming the same copy at most one succeeds.

        Returns:
            True if this call claimed the copy
        """
        result = session.execute(
            update(Copy)
            .where(Copy.id == copy_id, Copy.status == CopyStatus.AVAILABLE.value)
            .values(status=CopyStatus.LOANED.value)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def get_inventory(self) -> list[InventoryLine]:
        """Copy totals per book."""
        with self.db.get_session() as session:
            rows = session.execute(
                select(Book.id, Book.title, Copy.status, func.count(Copy.id))
                .join(Copy, Copy.book_id == Book.id, isouter=True)
                .group_by(Book.id, Book.title, Copy.status)
                .order_by(Book.title)
            ).all()

        lines: dict[str, InventoryLine] = {}
        for book_id, title, status, count in rows:
            line = lines.setdefault(
                book_id,
                InventoryLine(
                    book_id=book_id,
                    title=title,
                    total_copies=0,
                    available_copies=0,
                    loaned_copies=0,
                ),
            )
            if status is None:
                continue
            line.total_copies += count
            if status == CopyStatus.AVAILABLE.value:
                line.available_copies += count
            elif status == CopyStatus.LOANED.value:
                line.loaned_copies += count

        return list(lines.values())
