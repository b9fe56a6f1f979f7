"""
Pydantic schemas for registration-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class RegistrationCreate(BaseModel):
    event_id: int
    user_id: str = Field(..., min_length=1, max_length=64)
    first_name: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, max_length=255)
    guests_count: int = Field(default=1, ge=1, le=20)
    children_count: int = Field(default=0, ge=0, le=20)
    children_ages: Optional[str] = Field(None, max_length=255)
    car_info: Optional[str] = Field(None, max_length=1000)
    # Format is enforced by the client form
    phone: Optional[str] = Field(None, max_length=32)

    @model_validator(mode="after")
    def children_ages_required(self):
        if self.children_count > 0 and not (self.children_ages or "").strip():
            raise ValueError("children_ages is required when children_count > 0")
        if self.children_count == 0:
            self.children_ages = None
        return self


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: str
    first_name: Optional[str]
    username: Optional[str]
    guests_count: int
    children_count: int
    children_ages: Optional[str]
    car_info: Optional[str]
    phone: Optional[str]
    payment_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCreatedResponse(RegistrationResponse):
    payment_url: Optional[str] = None


class RegistrationDeleteResponse(BaseModel):
    message: str
    registration_id: int
