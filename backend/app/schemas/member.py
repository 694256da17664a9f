"""
Pydantic schemas for the member and trainer directory.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class MemberCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=40)


class MemberResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TrainerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    specialty: Optional[str] = Field(None, max_length=100)


class TrainerResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    specialty: Optional[str]
    is_active: bool

    model_config = {"from_attributes": True}
