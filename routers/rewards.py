"""
Reward catalogue and redemption endpoints.
"""
from fastapi import APIRouter, Depends, status
from typing import List

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, Reward, RewardCreate, RewardRedemption, RewardUpdate, User
from routers.common import fetch, fetch_one, lookup, raise_for_error
from services.activity_descriptions import change_metadata, raw_change_details
from services.admin_logger import AdminLogger
from services.data_service import DataService


router = APIRouter(prefix="/api/rewards", tags=["rewards"])


@router.get("", response_model=List[Reward])
def list_rewards(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(data_service.get_rewards, "rewards")


@router.get("/redemptions", response_model=List[RewardRedemption])
def list_redemptions(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    """All redemptions, newest first."""
    return fetch(data_service.get_redemptions, "redemptions")


@router.get("/{reward_id}", response_model=Reward)
def get_reward(
    reward_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch_one(lambda: data_service.get_reward(reward_id), "reward")


@router.get("/{reward_id}/redemptions", response_model=List[RewardRedemption])
def list_reward_redemptions(
    reward_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(lambda: data_service.get_redemptions(reward_id), "redemptions")


@router.post("", response_model=Reward, status_code=status.HTTP_201_CREATED)
def create_reward(
    reward_data: RewardCreate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    result = data_service.create_reward(reward_data)
    raise_for_error(result.error)
    reward = result.data

    admin_logger.log_create(
        AdminEntityType.REWARD,
        reward.id,
        f'Created reward "{reward.name}" requiring {reward.points_required} points with {reward.stock} in stock',
        {
            "reward_name": reward.name,
            "points_required": reward.points_required,
            "stock": reward.stock,
        },
    )
    return reward


@router.put("/{reward_id}", response_model=Reward)
def update_reward(
    reward_id: str,
    reward_data: RewardUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Update a reward; stock 0 makes it inactive."""
    current = lookup(lambda: data_service.get_reward(reward_id))
    result = data_service.update_reward(reward_id, reward_data)
    raise_for_error(result.error)
    reward = result.data

    metadata = change_metadata(current, reward_data.model_dump(exclude_unset=True))
    metadata["reward_name"] = reward.name
    admin_logger.log_update(
        AdminEntityType.REWARD,
        reward.id,
        f'Updated reward "{reward.name}" - Changes: {raw_change_details(metadata)}',
        metadata,
    )
    return reward


@router.delete("/{reward_id}")
def delete_reward(
    reward_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_reward(reward_id))
    redemptions = lookup(lambda: data_service.get_redemptions(reward_id)) or []
    result = data_service.delete_reward(reward_id)
    raise_for_error(result.error)

    name = current.name if current else None
    admin_logger.log_delete(
        AdminEntityType.REWARD,
        reward_id,
        f'Deleted reward "{name or reward_id}"',
        {"reward_name": name, "total_redemptions": len(redemptions)},
    )
    return {"message": "Reward deleted"}
