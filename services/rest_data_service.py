"""
REST data service.

Placeholder adapter for the companion REST API. Requests carry the bearer token
of the caller being served (falling back to the configured service token) and
JSON bodies; every call has a timeout. The adapter is shared by all requests,
so it keeps no per-user credentials of its own. Non-2xx responses raise
ApiError, which reads propagate and writes turn into an error result.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import BaseModel

from core.entities import (
    AdminHistory, AdminLogEntry, AuthResult, AuthSession, DashboardStats, DeleteResult,
    Event, EventCreate, EventUpdate, Feedback, FeedbackCreate, FeedbackUpdate,
    ImageDeleteResult, ImageUploadResult, Mission, MissionCreate, MissionSubmission,
    MissionUpdate, MonthlyEngagement, Reward, RewardCreate, RewardRedemption,
    RewardUpdate, ServiceResult, UploadedImage, User, UserCreate, UserRole, UserUpdate,
)
from core.logger import logger
from core.validators import validate_image_file
from services.data_service import DataService, DataServiceError, request_access_token
import config


class ApiError(DataServiceError):
    """Non-2xx response (or transport failure) from the REST API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RestDataService(DataService):
    """Data service that forwards every operation to the REST API."""

    name = "rest"

    def __init__(
        self,
        api_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        service_token: Optional[str] = None
    ):
        self.api_base_url = (api_base_url or config.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.API_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.service_token = service_token if service_token is not None else config.API_TOKEN

    def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None
    ) -> Any:
        headers = {}
        token = token or request_access_token.get() or self.service_token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.session.request(
                method,
                f"{self.api_base_url}{endpoint}",
                json=json,
                params=params,
                files=files,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ApiError(f"API Error: {e}") from e

        if not response.ok:
            raise ApiError(f"API Error: {response.reason}", response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _get_optional(self, model, endpoint: str):
        try:
            body = self._request("GET", endpoint)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return model.model_validate(body) if body else None

    def _get_list(self, model, endpoint: str, params: Optional[Dict[str, Any]] = None) -> list:
        body = self._request("GET", endpoint, params=params) or []
        return [model.model_validate(item) for item in body]

    def _write(self, model, method: str, endpoint: str, payload: Optional[BaseModel] = None, partial: bool = False) -> ServiceResult:
        try:
            body = None
            if payload is not None:
                body = payload.model_dump(mode="json", exclude_unset=partial, exclude_none=not partial)
            result = self._request(method, endpoint, json=body)
            logger.info(f"{method} {endpoint} succeeded")
            return ServiceResult(data=model.model_validate(result) if result else None)
        except Exception as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            return ServiceResult(error=str(e))

    def _delete(self, endpoint: str, method: str = "DELETE") -> DeleteResult:
        try:
            self._request(method, endpoint)
            logger.info(f"{method} {endpoint} succeeded")
            return DeleteResult()
        except Exception as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            return DeleteResult(error=str(e))

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def _authenticate(self, endpoint: str, payload: Dict[str, Any], failure: str) -> AuthResult:
        try:
            body = self._request("POST", endpoint, json=payload)
            token = body.get("token") or body.get("access_token")
            user = User.model_validate(body["user"])
        except Exception as e:
            logger.error(f"{failure}: {e}")
            return AuthResult(error=failure)
        return AuthResult(data=AuthSession(user=user, access_token=token))

    def sign_in(self, email: str, password: str) -> AuthResult:
        return self._authenticate(
            "/api/auth/login",
            {"email": email, "password": password},
            "Login failed",
        )

    def sign_up(self, email: str, password: str, full_name: str, role: UserRole = UserRole.ADMIN) -> AuthResult:
        return self._authenticate(
            "/api/auth/register",
            {"email": email, "password": password, "full_name": full_name, "role": UserRole(role).value},
            "Registration failed",
        )

    def sign_out(self, access_token: Optional[str] = None) -> AuthResult:
        token = access_token or request_access_token.get()
        if not token:
            return AuthResult()
        try:
            self._request("POST", "/api/auth/logout", token=token)
        except Exception as e:
            logger.error(f"Logout failed: {e}")
            return AuthResult(error=str(e))
        return AuthResult()

    def get_current_user(self, access_token: str) -> Optional[User]:
        try:
            body = self._request("GET", "/api/auth/me", token=access_token)
        except ApiError as e:
            if e.status_code in (401, 403, 404):
                return None
            raise
        return User.model_validate(body) if body else None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_users(self) -> List[User]:
        return self._get_list(User, "/api/users")

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get_optional(User, f"/api/users/{user_id}")

    def create_user(self, user_data: UserCreate) -> ServiceResult[User]:
        return self._write(User, "POST", "/api/users", user_data)

    def update_user(self, user_id: str, user_data: UserUpdate) -> ServiceResult[User]:
        return self._write(User, "PUT", f"/api/users/{user_id}", user_data, partial=True)

    def add_points_to_user(self, user_id: str, points: int) -> ServiceResult[User]:
        try:
            body = self._request("POST", f"/api/users/{user_id}/points", json={"points": points})
            return ServiceResult(data=User.model_validate(body))
        except Exception as e:
            logger.error(f"Failed to add points to user {user_id}: {e}")
            return ServiceResult(error=str(e))

    def delete_user(self, user_id: str) -> DeleteResult:
        return self._delete(f"/api/users/{user_id}")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def get_events(self) -> List[Event]:
        return self._get_list(Event, "/api/events")

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._get_optional(Event, f"/api/events/{event_id}")

    def create_event(self, event_data: EventCreate) -> ServiceResult[Event]:
        return self._write(Event, "POST", "/api/events", event_data)

    def update_event(self, event_id: str, event_data: EventUpdate) -> ServiceResult[Event]:
        return self._write(Event, "PUT", f"/api/events/{event_id}", event_data, partial=True)

    def delete_event(self, event_id: str) -> DeleteResult:
        return self._delete(f"/api/events/{event_id}")

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------
    def get_rewards(self) -> List[Reward]:
        return self._get_list(Reward, "/api/rewards")

    def get_reward(self, reward_id: str) -> Optional[Reward]:
        return self._get_optional(Reward, f"/api/rewards/{reward_id}")

    def create_reward(self, reward_data: RewardCreate) -> ServiceResult[Reward]:
        return self._write(Reward, "POST", "/api/rewards", reward_data)

    def update_reward(self, reward_id: str, reward_data: RewardUpdate) -> ServiceResult[Reward]:
        return self._write(Reward, "PUT", f"/api/rewards/{reward_id}", reward_data, partial=True)

    def delete_reward(self, reward_id: str) -> DeleteResult:
        return self._delete(f"/api/rewards/{reward_id}")

    def get_redemptions(self, reward_id: Optional[str] = None) -> List[RewardRedemption]:
        endpoint = f"/api/rewards/{reward_id}/redemptions" if reward_id else "/api/rewards/redemptions"
        return self._get_list(RewardRedemption, endpoint)

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    def get_feedback(self) -> List[Feedback]:
        return self._get_list(Feedback, "/api/feedback")

    def get_feedback_item(self, feedback_id: str) -> Optional[Feedback]:
        return self._get_optional(Feedback, f"/api/feedback/{feedback_id}")

    def create_feedback(self, feedback_data: FeedbackCreate) -> ServiceResult[Feedback]:
        return self._write(Feedback, "POST", "/api/feedback", feedback_data)

    def update_feedback(self, feedback_id: str, feedback_data: FeedbackUpdate) -> ServiceResult[Feedback]:
        return self._write(Feedback, "PUT", f"/api/feedback/{feedback_id}", feedback_data, partial=True)

    def delete_feedback(self, feedback_id: str) -> DeleteResult:
        return self._delete(f"/api/feedback/{feedback_id}")

    def mark_feedback_as_read(self, feedback_id: str) -> DeleteResult:
        return self._delete(f"/api/feedback/{feedback_id}/read", method="POST")

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------
    def get_missions(self) -> List[Mission]:
        return self._get_list(Mission, "/api/missions")

    def get_mission(self, mission_id: str) -> Optional[Mission]:
        return self._get_optional(Mission, f"/api/missions/{mission_id}")

    def create_mission(self, mission_data: MissionCreate) -> ServiceResult[Mission]:
        return self._write(Mission, "POST", "/api/missions", mission_data)

    def update_mission(self, mission_id: str, mission_data: MissionUpdate) -> ServiceResult[Mission]:
        return self._write(Mission, "PUT", f"/api/missions/{mission_id}", mission_data, partial=True)

    def delete_mission(self, mission_id: str) -> DeleteResult:
        return self._delete(f"/api/missions/{mission_id}")

    def get_mission_submissions(self, mission_id: Optional[str] = None) -> List[MissionSubmission]:
        params = {"mission_id": mission_id} if mission_id else None
        return self._get_list(MissionSubmission, "/api/missions/submissions", params=params)

    def approve_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]:
        return self._write(MissionSubmission, "POST", f"/api/missions/{mission_id}/submissions/{user_id}/approve")

    def reject_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]:
        return self._write(MissionSubmission, "POST", f"/api/missions/{mission_id}/submissions/{user_id}/reject")

    # ------------------------------------------------------------------
    # Admin history
    # ------------------------------------------------------------------
    def get_admin_history(self, limit: int = 100) -> List[AdminHistory]:
        return self._get_list(AdminHistory, "/api/admin/history", params={"limit": limit})

    def log_admin_action(self, entry: AdminLogEntry) -> ServiceResult[AdminHistory]:
        return self._write(AdminHistory, "POST", "/api/admin/history", entry)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def get_dashboard_stats(self) -> DashboardStats:
        return DashboardStats.model_validate(self._request("GET", "/api/dashboard/stats"))

    def get_monthly_engagement(self) -> List[MonthlyEngagement]:
        return self._get_list(MonthlyEngagement, "/api/dashboard/engagement")

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------
    def upload_image(self, image: UploadedImage, folder: str = config.DEFAULT_IMAGE_FOLDER) -> ImageUploadResult:
        is_valid, error = validate_image_file(
            image.filename,
            image.content_type,
            image.size,
            config.ALLOWED_IMAGE_TYPES,
            config.MAX_IMAGE_SIZE_MB * 1024 * 1024,
        )
        if not is_valid:
            return ImageUploadResult(success=False, error=error)
        try:
            body = self._request(
                "POST",
                "/api/images",
                files={"file": (image.filename, image.content, image.content_type)},
                data={"folder": folder},
            )
            return ImageUploadResult.model_validate(body)
        except Exception as e:
            logger.error(f"Image upload failed: {e}")
            return ImageUploadResult(success=False, error=str(e))

    def delete_image(self, image_id: str) -> ImageDeleteResult:
        try:
            self._request("DELETE", f"/api/images/{quote(str(image_id), safe='/')}")
            return ImageDeleteResult(success=True)
        except Exception as e:
            logger.error(f"Image delete failed for {image_id}: {e}")
            return ImageDeleteResult(success=False, error=str(e))
