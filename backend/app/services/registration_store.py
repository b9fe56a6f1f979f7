"""
Write access to registration payment state for the payment webhook.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event
from app.models.registration import Registration, PaymentStatus
from app.core.logging import get_logger

logger = get_logger(__name__)


class RegistrationStore:
    """
    The only writer of the pending -> paid transition after creation.

    `paid` is terminal, so the update is a blind single-row write: repeated
    or concurrent deliveries for the same id converge on the same value and
    can never move a registration back to pending.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def mark_paid(self, registration_id: int) -> Optional[int]:
        """
        Set payment_status to paid.

        Returns the price of the registration's event, or None if no such
        registration exists.
        """
        result = await self.session.execute(
            update(Registration)
            .where(Registration.id == registration_id)
            .values(payment_status=PaymentStatus.PAID.value)
        )

        price = None
        if result.rowcount > 0:
            price = (await self.session.execute(
                select(Event.price)
                .join(Registration, Registration.event_id == Event.id)
                .where(Registration.id == registration_id)
            )).scalar_one()
        await self.session.commit()

        logger.info("registration_marked_paid", registration_id=registration_id, found=price is not None)
        return price
