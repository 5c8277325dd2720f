"""
Event management endpoints.
"""
from fastapi import APIRouter, Depends, status
from typing import List

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, Event, EventCreate, EventUpdate, User
from routers.common import check_date_window, fetch, fetch_one, lookup, raise_for_error
from services.activity_descriptions import change_metadata, raw_change_details
from services.admin_logger import AdminLogger
from services.data_service import DataService


router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=List[Event])
def list_events(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(data_service.get_events, "events")


@router.get("/{event_id}", response_model=Event)
def get_event(
    event_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch_one(lambda: data_service.get_event(event_id), "event")


@router.post("", response_model=Event, status_code=status.HTTP_201_CREATED)
def create_event(
    event_data: EventCreate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """
    Create an event.
    Either start_date and end_date or a bare date (09:00-17:00 that day) is required.
    """
    check_date_window(event_data.start_date, event_data.end_date)
    result = data_service.create_event(event_data)
    raise_for_error(result.error)
    event = result.data

    admin_logger.log_create(
        AdminEntityType.EVENT,
        event.id,
        f'Created event "{event.title}" on {event.date} at {event.location or "unspecified location"}',
        {
            "event_title": event.title,
            "event_date": event.date,
            "location": event.location,
            "points": event.points,
            "max_participants": event.max_participants,
        },
    )
    return event


@router.put("/{event_id}", response_model=Event)
def update_event(
    event_id: str,
    event_data: EventUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_event(event_id))
    check_date_window(
        event_data.start_date or (current.start_date if current else None),
        event_data.end_date or (current.end_date if current else None),
    )
    result = data_service.update_event(event_id, event_data)
    raise_for_error(result.error)
    event = result.data

    metadata = change_metadata(current, event_data.model_dump(exclude_unset=True))
    metadata["event_title"] = event.title
    admin_logger.log_update(
        AdminEntityType.EVENT,
        event.id,
        f'Updated event "{event.title}" - Changes: {raw_change_details(metadata)}',
        metadata,
    )
    return event


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_event(event_id))
    result = data_service.delete_event(event_id)
    raise_for_error(result.error)

    title = current.title if current else None
    admin_logger.log_delete(
        AdminEntityType.EVENT,
        event_id,
        f'Deleted event "{title or event_id}"',
        {
            "event_title": title,
            "participant_count": current.participant_count if current else 0,
        },
    )
    return {"message": "Event deleted"}
