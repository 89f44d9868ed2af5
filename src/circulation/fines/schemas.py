"""Pydantic schemas for fines."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FineStatus(str, Enum):
    """Status of a fine."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class FineCreate(BaseModel):
    """Schema for manually entering a fine against a returned loan."""

    loan_id: str
    days_late: int = Field(..., description="Whole days late; must be positive")


class FineResponse(BaseModel):
    """Schema for fine responses."""

    id: str
    loan_id: str
    patron_id: str
    value: Decimal
    days_late: int
    status: FineStatus
    start_date: datetime
    end_date: Optional[datetime]

    model_config = {"from_attributes": True}


class FineTotals(BaseModel):
    """Outstanding fines for a patron."""

    patron_id: str
    pending_count: int
    pending_value: Decimal
