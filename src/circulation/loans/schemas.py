"""Pydantic schemas for loans."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class LoanStatus(str, Enum):
    """Status of a loan."""

    IN_PROGRESS = "in_progress"
    RENEWED = "renewed"
    RETURNED = "returned"
    OVERDUE = "overdue"  # Returned with a fine that reached its cap


# Statuses from which RenewLoan and ReturnLoan are allowed
RENEWABLE_STATUSES = (LoanStatus.IN_PROGRESS, LoanStatus.RENEWED)


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: str
    patron_id: str
    copy_id: str
    book_id: str
    employee_id: str
    status: LoanStatus
    loan_date: datetime
    due_date: datetime
    return_date: Optional[datetime]
    renewal_count: int
    is_overdue: bool

    model_config = {"from_attributes": True}


class RenewalResponse(BaseModel):
    """Schema for renewal history entries."""

    id: str
    loan_id: str
    employee_id: str
    renewed_at: datetime
    previous_due_date: datetime
    new_due_date: datetime

    model_config = {"from_attributes": True}


class LoanSummary(BaseModel):
    """Summary of an open loan for listing."""

    id: str
    patron_name: str
    book_title: str
    status: LoanStatus
    due_date: datetime
    days_overdue: int


class OverdueReport(BaseModel):
    """Report of open loans past their due date."""

    loans: list[LoanSummary]
    total_overdue: int
    oldest_overdue_days: int
