"""Shared SQLAlchemy declarative base.

Each feature package defines its tables in its own ``models`` module:
- catalog: books, copies
- patrons: patrons, employees
- loans: loans, renewals
- fines: fines
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_timestamp() -> str:
    """Current UTC time as an ISO string, for created/updated columns."""
    return datetime.now(timezone.utc).isoformat()
