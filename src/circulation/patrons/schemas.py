"""Pydantic schemas for patrons and employees."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PatronStatus(str, Enum):
    """Standing of a patron."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class EmployeeStatus(str, Enum):
    """Standing of an employee."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class PersonBase(BaseModel):
    """Fields shared by patrons and employees."""

    name: str = Field(..., min_length=1, max_length=200)
    document: str = Field(..., pattern=r"^\d{11}$", description="CPF, 11 digits")
    email: str = Field(..., max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=11)


class PatronCreate(PersonBase):
    """Schema for creating a patron."""

    pass


class PatronUpdate(BaseModel):
    """Schema for updating a patron."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=11)
    status: Optional[PatronStatus] = None


class PatronResponse(PersonBase):
    """Schema for patron responses."""

    id: str
    status: PatronStatus
    blocked: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EmployeeCreate(PersonBase):
    """Schema for creating an employee."""

    pass


class EmployeeResponse(PersonBase):
    """Schema for employee responses."""

    id: str
    status: EmployeeStatus
    created_at: datetime

    model_config = {"from_attributes": True}
