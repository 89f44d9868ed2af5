"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the circulation package,
including an in-memory database, managers wired to it, and sample
patrons, employees, books and copies.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Generator

import pytest

from circulation.catalog import BookCreate, CatalogManager
from circulation.config import Config
from circulation.db.sqlite import Database
from circulation.fines import FineManager
from circulation.loans import LoanManager
from circulation.patrons import EmployeeCreate, PatronCreate, PatronManager

# Monday 6 May 2024, 10:00 UTC
MONDAY = datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Generator[Database, None, None]:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    yield database

    database.drop_tables()


@pytest.fixture
def config() -> Config:
    """Standard lending policy."""
    return Config.defaults()


# ============================================================================
# Manager Fixtures
# ============================================================================


@pytest.fixture
def catalog(db: Database) -> CatalogManager:
    return CatalogManager(db)


@pytest.fixture
def patrons(db: Database) -> PatronManager:
    return PatronManager(db)


@pytest.fixture
def loans(db: Database, config: Config) -> LoanManager:
    return LoanManager(db, config)


@pytest.fixture
def fines(db: Database, config: Config) -> FineManager:
    return FineManager(db, config)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def patron(patrons: PatronManager):
    """Create a patron in good standing."""
    return patrons.create_patron(
        PatronCreate(
            name="Maria Silva",
            document="12345678901",
            email="maria@example.com",
            phone="11999990000",
        )
    )


@pytest.fixture
def other_patron(patrons: PatronManager):
    """Create a second patron."""
    return patrons.create_patron(
        PatronCreate(name="Joao Souza", document="10987654321", email="joao@example.com")
    )


@pytest.fixture
def employee(patrons: PatronManager):
    """Create an active employee."""
    return patrons.create_employee(
        EmployeeCreate(name="Ana Costa", document="55566677788", email="ana@library.org")
    )


@pytest.fixture
def book(catalog: CatalogManager):
    """Create a book worth 20.00 with one copy."""
    return catalog.create_book(
        BookCreate(
            title="Dom Casmurro",
            author="Machado de Assis",
            publisher="Garnier",
            genre="Fiction",
            pages=256,
            value=Decimal("20.00"),
        ),
        copies=1,
    )


@pytest.fixture
def copy(catalog: CatalogManager, book):
    """The available copy of ``book``."""
    return catalog.list_copies(book_id=book.id)[0]


@pytest.fixture
def make_copy(catalog: CatalogManager) -> Callable[..., str]:
    """Factory creating a book of the given value with one copy, returning the copy ID."""
    counter = {"n": 0}

    def _make(value: str = "20.00") -> str:
        counter["n"] += 1
        book = catalog.create_book(
            BookCreate(
                title=f"Book {counter['n']}",
                author="Test Author",
                value=Decimal(value),
            ),
            copies=1,
        )
        return catalog.list_copies(book_id=book.id)[0].id

    return _make


@pytest.fixture
def now() -> datetime:
    """A fixed Monday morning used as the loan date."""
    return MONDAY
