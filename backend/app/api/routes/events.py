"""
Event endpoints: public catalog plus organizer management.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from app.services.event_service import (
    create_event, get_event, list_events, update_event, archive_event, delete_event,
)
from app.core.security import get_current_admin_id

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Organizers only."""
    return await create_event(db, event_data, admin_id)


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """List open events with pagination."""
    events, total = await list_events(db, page, page_size, upcoming_only)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await get_event(db, event_id)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    """Edit an event. Organizers only."""
    return await update_event(db, event_id, event_data, admin_id)


@router.post("/{event_id}/archive", response_model=EventResponse)
async def archive_event_endpoint(
    event_id: int,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    """Close registration for an event. Organizers only."""
    return await archive_event(db, event_id, admin_id)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event and every registration for it. Organizers only."""
    await delete_event(db, event_id, admin_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
