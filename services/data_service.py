"""
Data service interface.

Every backend operation the admin API needs, independent of which backend is
in use. Reads return entities (or None / empty lists) and may raise when the
backend cannot be reached. Writes never raise: they return a ServiceResult or
DeleteResult whose `error` is a readable message, or None on success.
"""
import contextvars
from abc import ABC, abstractmethod
from typing import List, Optional

from core.entities import (
    AdminHistory, AdminLogEntry, AuthResult, DashboardStats, DeleteResult,
    Event, EventCreate, EventUpdate, Feedback, FeedbackCreate, FeedbackUpdate,
    ImageDeleteResult, ImageUploadResult, Mission, MissionCreate, MissionSubmission,
    MissionUpdate, MonthlyEngagement, Reward, RewardCreate, RewardRedemption,
    RewardUpdate, ServiceResult, UploadedImage, User, UserCreate, UserRole, UserUpdate,
)


class DataServiceError(Exception):
    """Raised by read operations when the backend fails."""


# Bearer token of the caller whose request is being served. Set per request by
# the auth dependencies; adapters that forward credentials read it from here.
request_access_token: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_access_token", default=None
)


class DataService(ABC):
    """Backend-agnostic contract implemented by each adapter."""

    name: str = "abstract"

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthResult: ...

    @abstractmethod
    def sign_up(self, email: str, password: str, full_name: str, role: UserRole = UserRole.ADMIN) -> AuthResult: ...

    @abstractmethod
    def sign_out(self, access_token: Optional[str] = None) -> AuthResult: ...

    @abstractmethod
    def get_current_user(self, access_token: str) -> Optional[User]: ...

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    @abstractmethod
    def get_users(self) -> List[User]: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, user_data: UserCreate) -> ServiceResult[User]: ...

    @abstractmethod
    def update_user(self, user_id: str, user_data: UserUpdate) -> ServiceResult[User]: ...

    def update_user_role(self, user_id: str, role: UserRole) -> ServiceResult[User]:
        return self.update_user(user_id, UserUpdate(role=role))

    @abstractmethod
    def add_points_to_user(self, user_id: str, points: int) -> ServiceResult[User]: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> DeleteResult: ...

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @abstractmethod
    def get_events(self) -> List[Event]: ...

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[Event]: ...

    @abstractmethod
    def create_event(self, event_data: EventCreate) -> ServiceResult[Event]: ...

    @abstractmethod
    def update_event(self, event_id: str, event_data: EventUpdate) -> ServiceResult[Event]: ...

    @abstractmethod
    def delete_event(self, event_id: str) -> DeleteResult: ...

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------
    @abstractmethod
    def get_rewards(self) -> List[Reward]: ...

    @abstractmethod
    def get_reward(self, reward_id: str) -> Optional[Reward]: ...

    @abstractmethod
    def create_reward(self, reward_data: RewardCreate) -> ServiceResult[Reward]: ...

    @abstractmethod
    def update_reward(self, reward_id: str, reward_data: RewardUpdate) -> ServiceResult[Reward]: ...

    @abstractmethod
    def delete_reward(self, reward_id: str) -> DeleteResult: ...

    @abstractmethod
    def get_redemptions(self, reward_id: Optional[str] = None) -> List[RewardRedemption]: ...

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    @abstractmethod
    def get_feedback(self) -> List[Feedback]: ...

    @abstractmethod
    def get_feedback_item(self, feedback_id: str) -> Optional[Feedback]: ...

    @abstractmethod
    def create_feedback(self, feedback_data: FeedbackCreate) -> ServiceResult[Feedback]: ...

    @abstractmethod
    def update_feedback(self, feedback_id: str, feedback_data: FeedbackUpdate) -> ServiceResult[Feedback]: ...

    @abstractmethod
    def delete_feedback(self, feedback_id: str) -> DeleteResult: ...

    @abstractmethod
    def mark_feedback_as_read(self, feedback_id: str) -> DeleteResult: ...

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------
    @abstractmethod
    def get_missions(self) -> List[Mission]: ...

    @abstractmethod
    def get_mission(self, mission_id: str) -> Optional[Mission]: ...

    @abstractmethod
    def create_mission(self, mission_data: MissionCreate) -> ServiceResult[Mission]: ...

    @abstractmethod
    def update_mission(self, mission_id: str, mission_data: MissionUpdate) -> ServiceResult[Mission]: ...

    @abstractmethod
    def delete_mission(self, mission_id: str) -> DeleteResult: ...

    @abstractmethod
    def get_mission_submissions(self, mission_id: Optional[str] = None) -> List[MissionSubmission]: ...

    @abstractmethod
    def approve_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]: ...

    @abstractmethod
    def reject_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]: ...

    # ------------------------------------------------------------------
    # Admin history
    # ------------------------------------------------------------------
    @abstractmethod
    def get_admin_history(self, limit: int = 100) -> List[AdminHistory]: ...

    @abstractmethod
    def log_admin_action(self, entry: AdminLogEntry) -> ServiceResult[AdminHistory]: ...

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    @abstractmethod
    def get_dashboard_stats(self) -> DashboardStats: ...

    @abstractmethod
    def get_monthly_engagement(self) -> List[MonthlyEngagement]: ...

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------
    @abstractmethod
    def upload_image(self, image: UploadedImage, folder: str = "uploads") -> ImageUploadResult: ...

    @abstractmethod
    def delete_image(self, image_id: str) -> ImageDeleteResult: ...
