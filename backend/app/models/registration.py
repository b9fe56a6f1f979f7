"""
Registration model: a crew's booking for one event.

Key design decisions:
- Unique constraint on (event_id, user_id): one crew per member per event
- `payment_status` only ever moves pending -> paid; the payment webhook is
  the single writer of that transition (free events are created as paid)
- Cancellation deletes the row; there is no soft-delete status
"""

import enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(64), nullable=False, index=True)  # Telegram user id
    first_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)

    # Crew composition; guests_count counts adults including the driver
    guests_count = Column(Integer, nullable=False, default=1)
    children_count = Column(Integer, nullable=False, default=0)
    children_ages = Column(String(255), nullable=True)
    car_info = Column(Text, nullable=True)
    phone = Column(String(32), nullable=True)

    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    event = relationship("Event", back_populates="registrations")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_user_registration"),
        CheckConstraint("guests_count >= 1", name="check_registration_guests_positive"),
        CheckConstraint("children_count >= 0", name="check_registration_children_non_negative"),
        CheckConstraint(
            "payment_status IN ('pending', 'paid')", name="check_registration_payment_status"
        ),
    )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event={self.event_id}, user={self.user_id}, "
            f"payment_status={self.payment_status})>"
        )
