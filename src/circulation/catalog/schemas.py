"""Pydantic schemas for the catalog."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CopyStatus(str, Enum):
    """Status of a physical copy."""

    AVAILABLE = "available"
    LOANED = "loaned"
    DAMAGED = "damaged"
    LOST = "lost"


class BookBase(BaseModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    publisher: Optional[str] = Field(None, max_length=500)
    genre: Optional[str] = Field(None, max_length=50)
    pages: Optional[int] = Field(None, ge=1)
    value: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class BookCreate(BookBase):
    """Schema for creating a book."""

    pass


class BookResponse(BookBase):
    """Schema for book responses."""

    id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CopyResponse(BaseModel):
    """Schema for copy responses."""

    id: str
    book_id: str
    status: CopyStatus

    model_config = {"from_attributes": True}


class InventoryLine(BaseModel):
    """Copy counts for one book."""

    book_id: str
    title: str
    total_copies: int
    available_copies: int
    loaned_copies: int
