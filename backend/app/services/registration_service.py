"""
Booking flow: crews register for events and pay through YooMoney.

PAYMENT LIFECYCLE
=================

  priced event:  create -> pending --(verified webhook)--> paid
  free event:    create -> paid

The service never sets `paid` on an existing row. After the member returns
from the hosted checkout the client re-reads the registration; the
transition happens out of band in the payment webhook.

Members may cancel only while the registration is pending. Organizers may
delete any registration. Both remove the row.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_registration, record_payment_link
from app.models.event import Event
from app.models.registration import Registration, PaymentStatus
from app.schemas.registration import RegistrationCreate
from app.services.payment_links import build_payment_url, build_return_url

logger = get_logger(__name__)


async def create_registration(
    db: AsyncSession,
    data: RegistrationCreate,
) -> tuple[Registration, Optional[str]]:
    """
    Register a crew for an event.
    Returns the registration and, for priced events, the checkout URL.
    """
    settings = get_settings()

    event = (await db.execute(select(Event).where(Event.id == data.event_id))).scalar_one_or_none()
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {data.event_id} not found",
        )

    if event.is_archived:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration for this event is closed",
        )

    if data.children_count > 0 and not event.children_allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Children are not allowed on this event",
        )

    if not event.is_free and not settings.YOOMONEY_RECEIVER:
        logger.error("payment_receiver_not_configured", event_id=event.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Payments are not configured",
        )

    existing = await db.execute(
        select(Registration.id).where(
            Registration.event_id == event.id,
            Registration.user_id == data.user_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already registered for this event",
        )

    registration = Registration(
        **data.model_dump(),
        payment_status=(PaymentStatus.PAID if event.is_free else PaymentStatus.PENDING).value,
    )
    db.add(registration)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race against a concurrent submit from the same member
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already registered for this event",
        )
    await db.refresh(registration)

    payment_url = None
    if event.is_free:
        record_registration("created_paid")
    else:
        payment_url = build_payment_url(
            registration.id,
            event.title,
            event.price,
            receiver=settings.YOOMONEY_RECEIVER,
            return_url=build_return_url(settings.APP_RETURN_URL, event.id),
            checkout_url=settings.YOOMONEY_CHECKOUT_URL,
            payment_type=settings.YOOMONEY_PAYMENT_TYPE,
        )
        record_registration("created_pending")
        record_payment_link()

    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event.id,
        user_id=registration.user_id,
        payment_status=registration.payment_status,
        crew=registration.guests_count + registration.children_count,
    )
    return registration, payment_url


async def get_registration(db: AsyncSession, registration_id: int) -> Registration:
    """Fetch a registration; this is how the client observes the paid transition."""
    result = await db.execute(select(Registration).where(Registration.id == registration_id))
    registration = result.scalar_one_or_none()

    if not registration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration not found",
        )
    return registration


async def list_user_registrations(db: AsyncSession, user_id: str) -> list[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.created_at.desc())
    )
    return list(result.scalars().all())


async def list_event_registrations(db: AsyncSession, event_id: int) -> list[Registration]:
    """Participants of an event in sign-up order, for organizers."""
    result = await db.execute(
        select(Registration)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at.asc(), Registration.id.asc())
    )
    return list(result.scalars().all())


async def cancel_registration(db: AsyncSession, registration_id: int, user_id: str) -> None:
    """
    Member-initiated cancellation of an unpaid registration.
    Paid registrations can only be removed by an organizer.
    """
    result = await db.execute(
        select(Registration).where(
            Registration.id == registration_id,
            Registration.user_id == user_id,
        )
    )
    registration = result.scalar_one_or_none()

    if not registration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Registration not found",
        )

    if registration.is_paid:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Paid registrations cannot be cancelled; contact the organizers",
        )

    await db.delete(registration)
    await db.flush()

    record_registration("cancelled")
    logger.info(
        "registration_cancelled",
        registration_id=registration_id,
        user_id=user_id,
        event_id=registration.event_id,
    )


async def admin_delete_registration(db: AsyncSession, registration_id: int, admin_id: int) -> None:
    """Remove a registration regardless of its payment status."""
    registration = await get_registration(db, registration_id)
    payment_status = registration.payment_status

    await db.delete(registration)
    await db.flush()

    record_registration("deleted_by_admin")
    logger.info(
        "registration_deleted_by_admin",
        registration_id=registration_id,
        admin_id=admin_id,
        payment_status=payment_status,
    )
