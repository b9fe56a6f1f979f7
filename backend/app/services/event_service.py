"""
Event service handling CRUD operations.
"""

from datetime import datetime, timezone
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.models.event import Event
from app.schemas.event import EventCreate, EventUpdate
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate, admin_id: int) -> Event:
    """Create a new event. Trips can only be scheduled in the future."""
    if event_data.date <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event date must be in the future",
        )

    event = Event(**event_data.model_dump())
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, price=event.price, admin_id=admin_id)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    include_archived: bool = False,
) -> tuple[list[Event], int]:
    """List events with pagination, soonest first."""
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.date >= datetime.now(timezone.utc))
    if not include_archived:
        query = query.where(Event.is_archived.is_(False))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, admin_id: int) -> Event:
    """Apply the fields present in the request. A moved date must still be in the future."""
    event = await get_event(db, event_id)
    changes = event_data.model_dump(exclude_unset=True)

    if "date" in changes and changes["date"] <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event date must be in the future",
        )

    for field, value in changes.items():
        setattr(event, field, value)
    await db.flush()
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id, fields=sorted(changes), admin_id=admin_id)
    return event


async def archive_event(db: AsyncSession, event_id: int, admin_id: int) -> Event:
    """Close an event for registration while keeping its participants."""
    event = await get_event(db, event_id)
    event.is_archived = True
    await db.flush()
    await db.refresh(event)

    logger.info("event_archived", event_id=event.id, admin_id=admin_id)
    return event


async def delete_event(db: AsyncSession, event_id: int, admin_id: int) -> None:
    """Delete an event together with all of its registrations."""
    event = await get_event(db, event_id)
    await db.delete(event)
    await db.flush()

    logger.info("event_deleted", event_id=event_id, admin_id=admin_id)
