"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    date: datetime
    location: Optional[str] = Field(None, max_length=255)
    price: int = Field(default=0, ge=0, le=1_000_000)
    image_url: Optional[str] = Field(None, max_length=1000)
    warning_text: Optional[str] = Field(None, max_length=1000)
    children_allowed: bool = True


class EventUpdate(BaseModel):
    """Partial update. Only fields present in the request body are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    price: Optional[int] = Field(None, ge=0, le=1_000_000)
    image_url: Optional[str] = Field(None, max_length=1000)
    warning_text: Optional[str] = Field(None, max_length=1000)
    children_allowed: Optional[bool] = None

    @model_validator(mode="after")
    def required_fields_not_cleared(self):
        for name in ("title", "date", "price", "children_allowed"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    location: Optional[str]
    price: int
    image_url: Optional[str]
    warning_text: Optional[str]
    children_allowed: bool
    is_archived: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
