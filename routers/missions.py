"""
Mission and mission-submission endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, Mission, MissionCreate, MissionSubmission, MissionUpdate, User
from routers.common import check_date_window, fetch, fetch_one, lookup, raise_for_error
from services.activity_descriptions import change_metadata
from services.admin_logger import AdminLogger
from services.data_service import DataService


router = APIRouter(prefix="/api/missions", tags=["missions"])


@router.get("", response_model=List[Mission])
def list_missions(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(data_service.get_missions, "missions")


@router.get("/submissions", response_model=List[MissionSubmission])
def list_submissions(
    mission_id: Optional[str] = Query(None, description="Only submissions for this mission"),
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(lambda: data_service.get_mission_submissions(mission_id), "mission submissions")


@router.get("/{mission_id}", response_model=Mission)
def get_mission(
    mission_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch_one(lambda: data_service.get_mission(mission_id), "mission")


@router.post("", response_model=Mission, status_code=status.HTTP_201_CREATED)
def create_mission(
    mission_data: MissionCreate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    check_date_window(mission_data.start_date, mission_data.end_date)
    result = data_service.create_mission(mission_data)
    raise_for_error(result.error)
    mission = result.data

    admin_logger.log_create(
        AdminEntityType.MISSION,
        mission.id,
        f'Created mission: "{mission.title}" ({mission.points} points)',
        {
            "mission_title": mission.title,
            "points_reward": mission.points,
            "created_at": mission.created_at,
        },
    )
    return mission


@router.put("/{mission_id}", response_model=Mission)
def update_mission(
    mission_id: str,
    mission_data: MissionUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_mission(mission_id))
    check_date_window(
        mission_data.start_date or (current.start_date if current else None),
        mission_data.end_date or (current.end_date if current else None),
    )
    result = data_service.update_mission(mission_id, mission_data)
    raise_for_error(result.error)
    mission = result.data

    metadata = change_metadata(current, mission_data.model_dump(exclude_unset=True))
    metadata["mission_title"] = mission.title
    admin_logger.log_update(
        AdminEntityType.MISSION,
        mission.id,
        f'Updated mission: "{mission.title}"',
        metadata,
    )
    return mission


@router.delete("/{mission_id}")
def delete_mission(
    mission_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_mission(mission_id))
    result = data_service.delete_mission(mission_id)
    raise_for_error(result.error)

    title = current.title if current else None
    admin_logger.log_delete(
        AdminEntityType.MISSION,
        mission_id,
        f'Deleted mission: "{title or mission_id}"',
        {
            "mission_title": title,
            "submission_count": current.submission_count if current else 0,
        },
    )
    return {"message": "Mission deleted"}


def _review_submission(
    mission_id: str,
    user_id: str,
    approve: bool,
    data_service: DataService,
    admin_logger: AdminLogger
) -> MissionSubmission:
    mission = lookup(lambda: data_service.get_mission(mission_id))
    if approve:
        result = data_service.approve_submission(user_id, mission_id)
    else:
        result = data_service.reject_submission(user_id, mission_id)
    raise_for_error(result.error)
    submission = result.data

    verb = "Approved" if approve else "Rejected"
    title = mission.title if mission else None
    admin_logger.log_update(
        AdminEntityType.MISSION,
        mission_id,
        f'{verb} submission from "{submission.user_name}" for mission "{title or mission_id}"',
        {
            "action": "approve_submission" if approve else "reject_submission",
            "mission_title": title,
            "user_name": submission.user_name,
            "user_email": submission.user_email,
            "submission_id": submission.id,
        },
    )
    return submission


@router.post("/{mission_id}/submissions/{user_id}/approve", response_model=MissionSubmission)
def approve_submission(
    mission_id: str,
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Approve the user's pending submission. Awarding points is handled by the rewards backend."""
    return _review_submission(mission_id, user_id, True, data_service, admin_logger)


@router.post("/{mission_id}/submissions/{user_id}/reject", response_model=MissionSubmission)
def reject_submission(
    mission_id: str,
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    return _review_submission(mission_id, user_id, False, data_service, admin_logger)
