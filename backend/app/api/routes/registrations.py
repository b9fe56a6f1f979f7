"""
Registration endpoints: the member booking flow and organizer moderation.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.registration import (
    RegistrationCreate,
    RegistrationResponse,
    RegistrationCreatedResponse,
    RegistrationDeleteResponse,
)
from app.services.event_service import get_event
from app.services.registration_service import (
    create_registration,
    get_registration,
    list_user_registrations,
    list_event_registrations,
    cancel_registration,
    admin_delete_registration,
)
from app.core.security import get_current_admin_id

router = APIRouter(prefix="/registrations", tags=["Registrations"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/", response_model=RegistrationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_registration_endpoint(
    data: RegistrationCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a crew for an event.

    Priced events return a `payment_url` to the YooMoney checkout and the
    registration stays `pending` until the payment notification arrives.
    Free events are confirmed immediately.
    """
    registration, payment_url = await create_registration(db, data)
    response = RegistrationCreatedResponse.model_validate(registration)
    response.payment_url = payment_url
    return response


@router.get("/", response_model=list[RegistrationResponse])
async def list_user_registrations_endpoint(
    user_id: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    return await list_user_registrations(db, user_id)


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration_endpoint(
    registration_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Current state of a registration; polled after returning from checkout."""
    return await get_registration(db, registration_id)


@router.delete("/{registration_id}", response_model=RegistrationDeleteResponse)
async def cancel_registration_endpoint(
    registration_id: int,
    user_id: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    """Cancel your own registration while it is still unpaid."""
    await cancel_registration(db, registration_id, user_id)
    return RegistrationDeleteResponse(
        message="Registration cancelled",
        registration_id=registration_id,
    )


@admin_router.get("/events/{event_id}/registrations", response_model=list[RegistrationResponse])
async def list_event_registrations_endpoint(
    event_id: int,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    await get_event(db, event_id)
    return await list_event_registrations(db, event_id)


@admin_router.delete("/registrations/{registration_id}", response_model=RegistrationDeleteResponse)
async def admin_delete_registration_endpoint(
    registration_id: int,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    """Remove any registration, paid or not."""
    await admin_delete_registration(db, registration_id, admin_id)
    return RegistrationDeleteResponse(
        message="Registration deleted",
        registration_id=registration_id,
    )
