"""Loan lifecycle module.

Provides functionality for:
- Lending eligibility checks
- Due dates in business days
- Renewals and returns
- Fines assessed on late returns
"""

from .manager import LoanManager
from .models import Loan, Renewal
from .repository import LoanRepository
from .schemas import (
    LoanResponse,
    LoanStatus,
    LoanSummary,
    OverdueReport,
    RenewalResponse,
)

__all__ = [
    "LoanManager",
    "LoanRepository",
    "Loan",
    "Renewal",
    "LoanResponse",
    "LoanStatus",
    "LoanSummary",
    "OverdueReport",
    "RenewalResponse",
]
