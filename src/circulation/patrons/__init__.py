"""Patron and employee module.

Provides functionality for:
- Registering patrons and employees
- Patron standing (active, inactive, blocked)
- Loan history lookups used by lending eligibility rules
"""

from .manager import PatronManager
from .models import Employee, Patron
from .schemas import (
    EmployeeCreate,
    EmployeeResponse,
    EmployeeStatus,
    PatronCreate,
    PatronResponse,
    PatronStatus,
    PatronUpdate,
)

__all__ = [
    "PatronManager",
    "Patron",
    "Employee",
    "PatronCreate",
    "PatronUpdate",
    "PatronResponse",
    "PatronStatus",
    "EmployeeCreate",
    "EmployeeResponse",
    "EmployeeStatus",
]
