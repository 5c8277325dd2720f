"""
User management endpoints.
"""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from typing import List

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, User, UserCreate, UserRole, UserUpdate
from routers.common import fetch, fetch_one, lookup, raise_for_error
from services.activity_descriptions import change_metadata, raw_change_details
from services.admin_logger import AdminLogger
from services.data_service import DataService


router = APIRouter(prefix="/api/users", tags=["users"])


class RoleUpdate(BaseModel):
    role: UserRole


class PointsAdjustment(BaseModel):
    points: int


@router.get("", response_model=List[User])
def list_users(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch(data_service.get_users, "users")


@router.get("/{user_id}", response_model=User)
def get_user(
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    return fetch_one(lambda: data_service.get_user(user_id), "user")


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Create a user account manually."""
    result = data_service.create_user(user_data)
    raise_for_error(result.error)
    user = result.data

    admin_logger.log_create(
        AdminEntityType.USER,
        user.id,
        f'Created new user account for "{user.email}" with role "{user.role}" and name "{user.full_name}"',
        {
            "user_email": user.email,
            "user_role": user.role,
            "full_name": user.full_name,
            "initial_points": user.points,
            "account_type": "manual_creation",
        },
    )
    return user


@router.put("/{user_id}", response_model=User)
def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Update the fields present in the request; others are left unchanged."""
    current = lookup(lambda: data_service.get_user(user_id))
    result = data_service.update_user(user_id, user_data)
    raise_for_error(result.error)
    user = result.data

    metadata = change_metadata(current, user_data.model_dump(exclude_unset=True))
    metadata.update(user_email=user.email, user_name=user.full_name)
    admin_logger.log_update(
        AdminEntityType.USER,
        user.id,
        f'Updated user profile for "{user.email}" - Changes: {raw_change_details(metadata)}',
        metadata,
    )
    return user


@router.put("/{user_id}/role", response_model=User)
def update_user_role(
    user_id: str,
    role_update: RoleUpdate,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_user(user_id))
    old_role = current.role if current else "unknown"
    result = data_service.update_user_role(user_id, role_update.role)
    raise_for_error(result.error)
    user = result.data

    admin_logger.log_update(
        AdminEntityType.USER,
        user.id,
        f'Changed user role for "{user.email}" from "{old_role}" to "{role_update.role.value}"',
        {
            "user_email": user.email,
            "user_name": user.full_name,
            "old_role": old_role,
            "new_role": role_update.role.value,
            "permission_change": True,
        },
    )
    return user


@router.post("/{user_id}/points", response_model=User)
def add_points(
    user_id: str,
    adjustment: PointsAdjustment,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Add (or, with a negative value, remove) points from a user."""
    current = lookup(lambda: data_service.get_user(user_id))
    old_points = current.points if current else 0
    result = data_service.add_points_to_user(user_id, adjustment.points)
    raise_for_error(result.error)
    user = result.data

    admin_logger.log_update(
        AdminEntityType.USER,
        user.id,
        f'Added {adjustment.points} points to user "{user.email}" ({old_points} → {user.points} points)',
        {
            "user_email": user.email,
            "user_name": user.full_name,
            "points_added": adjustment.points,
            "old_points": old_points,
            "new_points": user.points,
            "transaction_type": "admin_adjustment",
        },
    )
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    current = lookup(lambda: data_service.get_user(user_id))
    result = data_service.delete_user(user_id)
    raise_for_error(result.error)

    email = current.email if current else None
    admin_logger.log_delete(
        AdminEntityType.USER,
        user_id,
        f'Deleted user account "{email or user_id}"',
        {"user_email": email, "user_name": current.full_name if current else None},
    )
    return {"message": "User deleted"}
