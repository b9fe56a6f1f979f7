"""
Event model: one club trip that members can register a crew for.

Key design decisions:
- `price` is whole rubles per crew; 0 marks a free trip
- Archived events stay in the table for reports but accept no registrations
- Index on `date` for the upcoming-events listing
"""

from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=True)
    price = Column(Integer, nullable=False, default=0)
    image_url = Column(String(1000), nullable=True)
    warning_text = Column(String(1000), nullable=True)
    children_allowed = Column(Boolean, nullable=False, default=True)
    is_archived = Column(Boolean, nullable=False, default=False)

    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        Index("ix_events_date", "date"),
    )

    @property
    def is_free(self) -> bool:
        return self.price == 0

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, price={self.price})>"
