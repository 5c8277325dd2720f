"""
Canonical entities shared by every data service backend.

These are the interface-level shapes of each resource. They are deliberately
independent of any backend's storage schema; adapters map native rows to and
from them. Create payloads carry the fields a new record needs, update payloads
are all-optional and only the fields explicitly set are written.
"""
import enum
from datetime import datetime, date as date_type
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class CaseInsensitiveEnum(str, enum.Enum):
    """String enum that accepts any casing ("PENDING", "Pending", "pending")."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None


class UserRole(CaseInsensitiveEnum):
    ADMIN = "admin"
    USER = "user"


class EventStatus(CaseInsensitiveEnum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class MissionStatus(CaseInsensitiveEnum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class SubmissionStatus(CaseInsensitiveEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdminActionType(CaseInsensitiveEnum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class AdminEntityType(CaseInsensitiveEnum):
    USER = "USER"
    EVENT = "EVENT"
    REWARD = "REWARD"
    FEEDBACK = "FEEDBACK"
    MISSION = "MISSION"
    SYSTEM = "SYSTEM"


# ============================================================================
# Result types
# ============================================================================

T = TypeVar("T")


class ServiceResult(BaseModel, Generic[T]):
    """Outcome of a write: `data` on success, a readable `error` otherwise."""
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeleteResult(BaseModel):
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ImageUploadResult(BaseModel):
    success: bool
    image_url: Optional[str] = None
    image_id: Optional[str] = None
    error: Optional[str] = None


class ImageDeleteResult(BaseModel):
    success: bool
    error: Optional[str] = None


class UploadedImage(BaseModel):
    """An image file received from a client, held in memory."""
    filename: str
    content_type: Optional[str] = None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


# ============================================================================
# Users
# ============================================================================

class User(BaseModel):
    id: str
    email: str
    full_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    points: int = 0
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        if isinstance(value, enum.Enum):
            value = value.value
        return str(value or "").strip().lower()


class UserCreate(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.USER
    points: int = Field(0, ge=0)
    avatar_url: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    points: Optional[int] = Field(None, ge=0)
    avatar_url: Optional[str] = None


class AuthSession(BaseModel):
    user: User
    access_token: Optional[str] = None


class AuthResult(BaseModel):
    data: Optional[AuthSession] = None
    error: Optional[str] = None


# ============================================================================
# Events
# ============================================================================

class Event(BaseModel):
    id: str
    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    date: Optional[str] = None
    location: Optional[str] = None
    points: int = 0
    image_url: Optional[str] = None
    status: EventStatus
    max_participants: Optional[int] = None
    participant_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    date: Optional[date_type] = None
    location: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    max_participants: Optional[int] = Field(None, gt=0)


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    max_participants: Optional[int] = Field(None, gt=0)


# ============================================================================
# Rewards
# ============================================================================

class Reward(BaseModel):
    id: str
    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    points_required: int
    stock: int
    image_url: Optional[str] = None
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RewardCreate(BaseModel):
    name: str
    description: Optional[str] = None
    points_required: int = Field(..., gt=0)
    stock: int = Field(..., ge=0)
    image_url: Optional[str] = None


class RewardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    points_required: Optional[int] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None


class RewardRedemption(BaseModel):
    id: str
    user_id: str
    reward_id: str
    points_deducted: int = 0
    redeemed_at: Optional[datetime] = None
    status: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_avatar: Optional[str] = None
    reward_name: Optional[str] = None


# ============================================================================
# Feedback
# ============================================================================

class Feedback(BaseModel):
    id: str
    user_id: str
    event_id: Optional[str] = None
    rating: Optional[int] = None
    message: str = ""
    comment: Optional[str] = None
    subject: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_avatar: Optional[str] = None
    event_title: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None


class FeedbackCreate(BaseModel):
    user_id: str
    event_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    message: str


class FeedbackUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    message: Optional[str] = None
    is_read: Optional[bool] = None


# ============================================================================
# Missions
# ============================================================================

class Mission(BaseModel):
    id: str
    title: str
    description: str = ""
    points: int = 0
    start_date: datetime
    end_date: datetime
    status: MissionStatus
    submission_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MissionCreate(BaseModel):
    title: str
    description: str = ""
    points: int = Field(100, ge=0)
    start_date: datetime
    end_date: datetime


class MissionUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class MissionSubmission(BaseModel):
    id: str
    user_id: str
    mission_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_avatar: Optional[str] = None
    photo_upload_count: int = 0
    status: SubmissionStatus
    month_year: Optional[str] = None
    photo_paths: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Admin activity log
# ============================================================================

class AdminLogEntry(BaseModel):
    """A single audit record as written by the admin logger."""
    admin_id: int
    action_type: AdminActionType
    entity_type: AdminEntityType
    entity_id: int = 1
    details: str
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AdminHistory(BaseModel):
    id: str
    log_id: Optional[int] = None
    admin_id: Optional[int] = None
    action_type: str
    action: Optional[str] = None
    entity_type: str
    entity_id: Optional[int] = None
    details: Optional[str] = None
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None
    admin_avatar: Optional[str] = None
    created_at: Optional[datetime] = None


# ============================================================================
# Dashboard
# ============================================================================

class DashboardStats(BaseModel):
    total_users: int = 0
    active_events: int = 0
    rewards_redeemed: int = 0
    engagement_rate: int = 0


class MonthlyEngagement(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    year: int
    participants: int = 0
    events: int = 0
    feedback: int = 0
    rewards_redeemed: int = 0
