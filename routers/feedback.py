"""
Feedback moderation endpoints.
"""
from fastapi import APIRouter, Depends, status
from typing import List, Optional

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, Feedback, FeedbackCreate, FeedbackUpdate, User
from routers.common import fetch, fetch_one, lookup, raise_for_error
from services.admin_logger import AdminLogger
from services.data_service import DataService


router = APIRouter(prefix="/api/feedback", tags=["feedback"])


def _event_info(item: Optional[Feedback]) -> str:
    if item and item.event_title:
        return f'for event "{item.event_title}"'
    return "(general feedback)"


@router.get("", response_model=List[Feedback])
def list_feedback(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(data_service.get_feedback, "feedback")


@router.get("/{feedback_id}", response_model=Feedback)
def get_feedback_item(
    feedback_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch_one(lambda: data_service.get_feedback_item(feedback_id), "feedback")


@router.post("", response_model=Feedback, status_code=status.HTTP_201_CREATED)
def create_feedback(
    feedback_data: FeedbackCreate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Record feedback on behalf of a user."""
    result = data_service.create_feedback(feedback_data)
    raise_for_error(result.error)
    item = result.data

    admin_logger.log_create(
        AdminEntityType.FEEDBACK,
        item.id,
        f'Recorded feedback from "{item.user_name}" {_event_info(item)}',
        {"user_name": item.user_name, "event_title": item.event_title, "rating": item.rating},
    )
    return item


@router.put("/{feedback_id}", response_model=Feedback)
def update_feedback(
    feedback_id: str,
    feedback_data: FeedbackUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    result = data_service.update_feedback(feedback_id, feedback_data)
    raise_for_error(result.error)
    item = result.data

    admin_logger.log_update(
        AdminEntityType.FEEDBACK,
        item.id,
        f'Updated feedback from "{item.user_name}" {_event_info(item)}',
        {
            "user_name": item.user_name,
            "event_title": item.event_title,
            "changes": feedback_data.model_dump(exclude_unset=True),
        },
    )
    return item


@router.post("/{feedback_id}/read")
def mark_feedback_as_read(
    feedback_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    item = lookup(lambda: data_service.get_feedback_item(feedback_id))
    result = data_service.mark_feedback_as_read(feedback_id)
    raise_for_error(result.error)

    user_name = item.user_name if item else "Unknown User"
    admin_logger.log_update(
        AdminEntityType.FEEDBACK,
        feedback_id,
        f'Marked feedback as read from user "{user_name}" {_event_info(item)}',
        {
            "action": "mark_as_read",
            "user_email": item.user_email if item else None,
            "user_name": user_name,
            "event_title": item.event_title if item else None,
        },
    )
    return {"message": "Feedback marked as read"}


@router.delete("/{feedback_id}")
def delete_feedback(
    feedback_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    item = lookup(lambda: data_service.get_feedback_item(feedback_id))
    result = data_service.delete_feedback(feedback_id)
    raise_for_error(result.error)

    user_name = item.user_name if item else "Unknown User"
    rating = item.rating if item else None
    message = item.message if item else ""
    admin_logger.log_delete(
        AdminEntityType.FEEDBACK,
        feedback_id,
        f'Deleted feedback from user "{user_name}" {_event_info(item)} - Rating: {rating or "N/A"}/5',
        {
            "feedback_preview": message[:100] + ("..." if len(message) > 100 else ""),
            "user_email": item.user_email if item else None,
            "user_name": user_name,
            "event_title": item.event_title if item else None,
            "rating": rating,
            "feedback_type": "event_feedback" if item and item.event_title else "general_feedback",
        },
    )
    return {"message": "Feedback deleted"}
