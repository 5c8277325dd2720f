"""
Hosted-backend data service.

Talks to the program's Postgres database through SQLAlchemy and stores images
in S3. The backend's native columns (first_name/last_name, redeemable_points,
thumbnail_image, points_reward, ...) are translated to and from the canonical
entities in core.entities; derived fields (event/mission status, event date,
reward is_active) are computed on every read and never written.
"""
import io
import math
import time
import secrets
import uuid
from datetime import datetime, time as dt_time
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from core.entities import (
    AdminHistory, AdminLogEntry, AuthResult, AuthSession, DashboardStats, DeleteResult,
    Event, EventCreate, EventUpdate, Feedback, FeedbackCreate, FeedbackUpdate,
    ImageDeleteResult, ImageUploadResult, Mission, MissionCreate, MissionSubmission,
    MissionUpdate, MonthlyEngagement, Reward, RewardCreate, RewardRedemption,
    RewardUpdate, ServiceResult, SubmissionStatus, UploadedImage, User, UserCreate,
    UserRole, UserUpdate,
)
from core.logger import logger
from core.utils import (
    compute_event_status, compute_mission_status, format_entity_id, is_reward_active,
    join_full_name, month_windows, parse_entity_id, split_full_name, to_naive_utc, utcnow,
)
from core.validators import sanitize_filename, validate_image_file
from auth.security import create_access_token, decode_access_token, get_password_hash, verify_password
from database import models
from database.connection import Database
from services.data_service import DataService
from storage.s3_client import S3Client
from storage.s3_paths import image_object_key
import config


def _error_message(exc: Exception) -> str:
    if isinstance(exc, IntegrityError) and exc.orig is not None:
        return str(exc.orig).strip().splitlines()[0]
    return str(exc) or exc.__class__.__name__


def _try_parse_id(entity_id) -> Optional[int]:
    try:
        return parse_entity_id(entity_id)
    except ValueError:
        return None


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


# ============================================================================
# Native row -> canonical entity
# ============================================================================

def user_from_row(row: models.User) -> User:
    return User(
        id=format_entity_id(row.user_id),
        email=row.email,
        full_name=join_full_name(row.first_name, row.last_name),
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        points=row.redeemable_points or 0,
        avatar_url=row.profile_picture,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def event_from_row(row: models.Event, participant_count: int = 0, now: Optional[datetime] = None) -> Event:
    return Event(
        id=format_entity_id(row.event_id),
        title=row.title,
        description=row.description or "",
        start_date=row.start_date,
        end_date=row.end_date,
        date=row.start_date.date().isoformat(),
        location=row.location,
        points=row.points or 0,
        image_url=row.thumbnail_image or config.DEFAULT_EVENT_IMAGE,
        status=compute_event_status(row.start_date, row.end_date, now),
        max_participants=row.max_participants or config.DEFAULT_MAX_PARTICIPANTS,
        participant_count=participant_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def reward_from_row(row: models.Reward) -> Reward:
    return Reward(
        id=format_entity_id(row.reward_id),
        name=row.name,
        title=row.name,
        description=row.description,
        points_required=row.points_required,
        stock=row.stock or 0,
        image_url=row.image_url,
        is_active=is_reward_active(row.stock),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def redemption_from_row(row: models.RewardRedemption) -> RewardRedemption:
    user = row.user
    return RewardRedemption(
        id=format_entity_id(row.redemption_id),
        user_id=format_entity_id(row.user_id),
        reward_id=format_entity_id(row.reward_id),
        points_deducted=row.points_deducted or 0,
        redeemed_at=row.redeemed_at,
        status=row.status,
        user_name=join_full_name(user.first_name, user.last_name) if user else "Unknown User",
        user_email=user.email if user else "",
        user_avatar=user.profile_picture if user else None,
        reward_name=row.reward.name if row.reward else "Unknown Reward",
    )


def feedback_from_row(row: models.Feedback) -> Feedback:
    user = row.user
    return Feedback(
        id=format_entity_id(row.feedback_id),
        user_id=format_entity_id(row.user_id),
        event_id=format_entity_id(row.event_id),
        rating=row.rating,
        comment=row.comment,
        message=row.comment or "",
        subject="Event Feedback" if row.event_id else "General Feedback",
        user_name=join_full_name(user.first_name, user.last_name) if user else "Anonymous User",
        user_email=user.email if user else "",
        user_avatar=user.profile_picture if user else None,
        event_title=row.event.title if row.event else None,
        is_read=bool(row.is_read),
        created_at=row.submitted_at,
        submitted_at=row.submitted_at,
    )


def mission_from_row(row: models.Mission, submission_count: int = 0, now: Optional[datetime] = None) -> Mission:
    return Mission(
        id=format_entity_id(row.mission_id),
        title=row.title,
        description=row.description or "",
        points=row.points_reward or 0,
        start_date=row.start_date,
        end_date=row.end_date,
        status=compute_mission_status(row.start_date, row.end_date, now),
        submission_count=submission_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def submission_from_row(row: models.MissionSubmission) -> MissionSubmission:
    user = row.user
    photos = [p for p in (row.photo_path_1, row.photo_path_2, row.photo_path_3) if p]
    return MissionSubmission(
        id=format_entity_id(row.submission_id),
        user_id=format_entity_id(row.user_id),
        mission_id=format_entity_id(row.mission_id),
        user_name=join_full_name(user.first_name, user.last_name) if user else "Unknown User",
        user_email=user.email if user else "",
        user_avatar=user.profile_picture if user else None,
        photo_upload_count=row.photo_upload_count or 0,
        status=SubmissionStatus(row.status),
        month_year=row.month_year,
        photo_paths=photos,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def history_from_row(row: models.AdminActivityLog) -> AdminHistory:
    admin = row.admin
    action_type = getattr(row.action_type, "value", row.action_type)
    return AdminHistory(
        id=format_entity_id(row.log_id),
        log_id=row.log_id,
        admin_id=row.admin_id,
        action_type=action_type,
        action=action_type,
        entity_type=getattr(row.entity_type, "value", row.entity_type),
        entity_id=row.entity_id,
        details=row.details,
        admin_name=join_full_name(admin.first_name, admin.last_name) if admin else config.SYSTEM_ADMIN_NAME,
        admin_email=admin.email if admin else config.SYSTEM_ADMIN_EMAIL,
        admin_avatar=admin.profile_picture if admin else None,
        created_at=row.created_at,
    )


class DatabaseDataService(DataService):
    """Data service backed by the hosted Postgres database and S3 image storage."""

    name = "database"

    def __init__(
        self,
        database: Database,
        s3_client: Optional[S3Client] = None,
        secret_key: Optional[str] = None
    ):
        """
        Args:
            database: Connected Database instance
            s3_client: Image storage; uploads fail with an error result when absent
            secret_key: Key used to sign access tokens
        """
        self.db = database
        self.s3_client = s3_client
        self.secret_key = secret_key or config.SECRET_KEY

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def _issue_session(self, row: models.User) -> AuthSession:
        token = create_access_token(
            {"sub": str(row.user_id), "role": row.role, "email": row.email},
            self.secret_key,
        )
        return AuthSession(user=user_from_row(row), access_token=token)

    def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            with self.db.get_session() as session:
                row = session.query(models.User).filter(
                    func.lower(models.User.email) == (email or "").strip().lower()
                ).first()
                if row is None or not verify_password(password or "", row.password_hash):
                    logger.warning(f"Failed sign-in attempt for {email}")
                    return AuthResult(error="Invalid login credentials")
                auth_session = self._issue_session(row)
            logger.info(f"User signed in: {email}")
            return AuthResult(data=auth_session)
        except Exception as e:
            logger.error(f"Sign-in failed for {email}: {e}")
            return AuthResult(error=_error_message(e))

    def sign_up(self, email: str, password: str, full_name: str, role: UserRole = UserRole.ADMIN) -> AuthResult:
        try:
            email = (email or "").strip().lower()
            role = UserRole(role)
            first_name, last_name = split_full_name(full_name)
            with self.db.get_session() as session:
                existing = session.query(models.User).filter(func.lower(models.User.email) == email).first()
                if existing is not None:
                    return AuthResult(error="User already registered")
                row = models.User(
                    sso_id=str(uuid.uuid4()),
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    username=email.split("@")[0],
                    role=role.value,
                    redeemable_points=0,
                    password_hash=get_password_hash(password),
                )
                session.add(row)
                session.flush()
                auth_session = self._issue_session(row)
            logger.info(f"Registered {role.value}: {email}")
            return AuthResult(data=auth_session)
        except Exception as e:
            logger.error(f"Sign-up failed for {email}: {e}")
            return AuthResult(error=_error_message(e))

    def sign_out(self, access_token: Optional[str] = None) -> AuthResult:
        # Access tokens are stateless; the client discards its copy.
        return AuthResult()

    def get_current_user(self, access_token: str) -> Optional[User]:
        payload = decode_access_token(access_token or "", self.secret_key)
        if not payload:
            return None
        user_id = _try_parse_id(payload.get("sub"))
        if user_id is None:
            return None
        with self.db.get_session() as session:
            row = session.get(models.User, user_id)
            return user_from_row(row) if row else None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_users(self) -> List[User]:
        with self.db.get_session() as session:
            rows = session.query(models.User).order_by(
                models.User.created_at.desc(), models.User.user_id.desc()
            ).all()
            return [user_from_row(row) for row in rows]

    def get_user(self, user_id: str) -> Optional[User]:
        parsed = _try_parse_id(user_id)
        if parsed is None:
            return None
        with self.db.get_session() as session:
            row = session.get(models.User, parsed)
            return user_from_row(row) if row else None

    def create_user(self, user_data: UserCreate) -> ServiceResult[User]:
        try:
            first_name, last_name = split_full_name(user_data.full_name)
            email = str(user_data.email).strip().lower()
            with self.db.get_session() as session:
                row = models.User(
                    email=email,
                    first_name=first_name or _clean(user_data.first_name) or "",
                    last_name=last_name or _clean(user_data.last_name) or "",
                    role=UserRole(user_data.role).value,
                    username=email.split("@")[0],
                    redeemable_points=user_data.points or 0,
                    profile_picture=user_data.avatar_url,
                    sso_id=f"manual-{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}",
                    password_hash=get_password_hash(user_data.password) if user_data.password else None,
                )
                session.add(row)
                session.flush()
                user = user_from_row(row)
            logger.info(f"Created user {user.id}: {user.email}")
            return ServiceResult(data=user)
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            return ServiceResult(error=_error_message(e))

    def update_user(self, user_id: str, user_data: UserUpdate) -> ServiceResult[User]:
        try:
            changes = user_data.model_dump(exclude_unset=True)
            with self.db.get_session() as session:
                row = session.get(models.User, parse_entity_id(user_id))
                if row is None:
                    return ServiceResult(error="User not found")
                if changes.get("email") is not None:
                    row.email = str(changes["email"]).strip().lower()
                if changes.get("role") is not None:
                    row.role = UserRole(changes["role"]).value
                if changes.get("points") is not None:
                    row.redeemable_points = changes["points"]
                if "avatar_url" in changes:
                    row.profile_picture = changes["avatar_url"]
                if changes.get("full_name") is not None:
                    row.first_name, row.last_name = split_full_name(changes["full_name"])
                row.updated_at = utcnow()
                session.flush()
                user = user_from_row(row)
            logger.info(f"Updated user {user_id}: {sorted(changes)}")
            return ServiceResult(data=user)
        except Exception as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def add_points_to_user(self, user_id: str, points: int) -> ServiceResult[User]:
        try:
            with self.db.get_session() as session:
                row = session.get(models.User, parse_entity_id(user_id))
                if row is None:
                    return ServiceResult(error="User not found")
                new_points = (row.redeemable_points or 0) + int(points)
                if new_points < 0:
                    return ServiceResult(error="Points cannot be negative")
                row.redeemable_points = new_points
                row.updated_at = utcnow()
                session.flush()
                user = user_from_row(row)
            logger.info(f"Added {points} points to user {user_id} (now {user.points})")
            return ServiceResult(data=user)
        except Exception as e:
            logger.error(f"Failed to add points to user {user_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def delete_user(self, user_id: str) -> DeleteResult:
        return self._delete(models.User, user_id, "User")

    def _delete(self, model, entity_id: str, label: str) -> DeleteResult:
        try:
            with self.db.get_session() as session:
                row = session.get(model, parse_entity_id(entity_id))
                if row is None:
                    return DeleteResult(error=f"{label} not found")
                session.delete(row)
            logger.info(f"Deleted {label.lower()} {entity_id}")
            return DeleteResult()
        except Exception as e:
            logger.error(f"Failed to delete {label.lower()} {entity_id}: {e}")
            return DeleteResult(error=_error_message(e))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def _participant_counts(self, session, event_ids: Optional[List[int]] = None) -> Dict[int, int]:
        query = session.query(
            models.EventParticipant.event_id,
            func.count(models.EventParticipant.participant_id)
        )
        if event_ids is not None:
            query = query.filter(models.EventParticipant.event_id.in_(event_ids))
        return dict(query.group_by(models.EventParticipant.event_id).all())

    def get_events(self) -> List[Event]:
        now = utcnow()
        with self.db.get_session() as session:
            rows = session.query(models.Event).order_by(
                models.Event.created_at.desc(), models.Event.event_id.desc()
            ).all()
            counts = self._participant_counts(session)
            return [event_from_row(row, counts.get(row.event_id, 0), now) for row in rows]

    def get_event(self, event_id: str) -> Optional[Event]:
        parsed = _try_parse_id(event_id)
        if parsed is None:
            return None
        with self.db.get_session() as session:
            row = session.get(models.Event, parsed)
            if row is None:
                return None
            counts = self._participant_counts(session, [parsed])
            return event_from_row(row, counts.get(parsed, 0))

    @staticmethod
    def _event_window(event_data: EventCreate):
        if event_data.start_date and event_data.end_date:
            return to_naive_utc(event_data.start_date), to_naive_utc(event_data.end_date)
        if event_data.date:
            start = datetime.combine(event_data.date, dt_time(config.DEFAULT_EVENT_START_HOUR))
            end = datetime.combine(event_data.date, dt_time(config.DEFAULT_EVENT_END_HOUR))
            return start, end
        raise ValueError("Event date is required")

    def create_event(self, event_data: EventCreate) -> ServiceResult[Event]:
        try:
            start_date, end_date = self._event_window(event_data)
            title = _clean(event_data.title)
            if not title:
                raise ValueError("Event title is required")
            with self.db.get_session() as session:
                row = models.Event(
                    title=title,
                    description=_clean(event_data.description) or "",
                    start_date=start_date,
                    end_date=end_date,
                    location=_clean(event_data.location),
                    points=event_data.points if event_data.points is not None else config.DEFAULT_EVENT_POINTS,
                    thumbnail_image=event_data.image_url or config.DEFAULT_EVENT_IMAGE,
                    max_participants=event_data.max_participants or config.DEFAULT_MAX_PARTICIPANTS,
                )
                session.add(row)
                session.flush()
                event = event_from_row(row, 0)
            logger.info(f"Created event {event.id}: {event.title}")
            return ServiceResult(data=event)
        except Exception as e:
            logger.error(f"Failed to create event: {e}")
            return ServiceResult(error=_error_message(e))

    def update_event(self, event_id: str, event_data: EventUpdate) -> ServiceResult[Event]:
        try:
            changes = event_data.model_dump(exclude_unset=True)
            parsed = parse_entity_id(event_id)
            with self.db.get_session() as session:
                row = session.get(models.Event, parsed)
                if row is None:
                    return ServiceResult(error="Event not found")
                if changes.get("title") is not None:
                    row.title = _clean(changes["title"])
                if "description" in changes:
                    row.description = changes["description"]
                if "location" in changes:
                    row.location = changes["location"]
                if "image_url" in changes:
                    row.thumbnail_image = changes["image_url"]
                if changes.get("start_date") is not None:
                    row.start_date = to_naive_utc(changes["start_date"])
                if changes.get("end_date") is not None:
                    row.end_date = to_naive_utc(changes["end_date"])
                if changes.get("points") is not None:
                    row.points = changes["points"]
                if changes.get("max_participants") is not None:
                    row.max_participants = changes["max_participants"]
                row.updated_at = utcnow()
                session.flush()
                counts = self._participant_counts(session, [parsed])
                event = event_from_row(row, counts.get(parsed, 0))
            logger.info(f"Updated event {event_id}: {sorted(changes)}")
            return ServiceResult(data=event)
        except Exception as e:
            logger.error(f"Failed to update event {event_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def delete_event(self, event_id: str) -> DeleteResult:
        return self._delete(models.Event, event_id, "Event")

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------
    def get_rewards(self) -> List[Reward]:
        with self.db.get_session() as session:
            rows = session.query(models.Reward).order_by(
                models.Reward.created_at.desc(), models.Reward.reward_id.desc()
            ).all()
            return [reward_from_row(row) for row in rows]

    def get_reward(self, reward_id: str) -> Optional[Reward]:
        parsed = _try_parse_id(reward_id)
        if parsed is None:
            return None
        with self.db.get_session() as session:
            row = session.get(models.Reward, parsed)
            return reward_from_row(row) if row else None

    def create_reward(self, reward_data: RewardCreate) -> ServiceResult[Reward]:
        try:
            name = _clean(reward_data.name)
            if not name:
                raise ValueError("Reward name is required")
            with self.db.get_session() as session:
                row = models.Reward(
                    name=name,
                    description=_clean(reward_data.description),
                    points_required=reward_data.points_required,
                    stock=reward_data.stock,
                    image_url=reward_data.image_url or config.DEFAULT_REWARD_IMAGE,
                )
                session.add(row)
                session.flush()
                reward = reward_from_row(row)
            logger.info(f"Created reward {reward.id}: {reward.name}")
            return ServiceResult(data=reward)
        except Exception as e:
            logger.error(f"Failed to create reward: {e}")
            return ServiceResult(error=_error_message(e))

    def update_reward(self, reward_id: str, reward_data: RewardUpdate) -> ServiceResult[Reward]:
        try:
            changes = reward_data.model_dump(exclude_unset=True)
            with self.db.get_session() as session:
                row = session.get(models.Reward, parse_entity_id(reward_id))
                if row is None:
                    return ServiceResult(error="Reward not found")
                if changes.get("name") is not None:
                    row.name = _clean(changes["name"])
                if "description" in changes:
                    row.description = changes["description"]
                if changes.get("points_required") is not None:
                    row.points_required = changes["points_required"]
                if changes.get("stock") is not None:
                    row.stock = changes["stock"]
                if "image_url" in changes:
                    row.image_url = changes["image_url"]
                row.updated_at = utcnow()
                session.flush()
                reward = reward_from_row(row)
            logger.info(f"Updated reward {reward_id}: {sorted(changes)}")
            return ServiceResult(data=reward)
        except Exception as e:
            logger.error(f"Failed to update reward {reward_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def delete_reward(self, reward_id: str) -> DeleteResult:
        return self._delete(models.Reward, reward_id, "Reward")

    def get_redemptions(self, reward_id: Optional[str] = None) -> List[RewardRedemption]:
        with self.db.get_session() as session:
            query = session.query(models.RewardRedemption).options(
                joinedload(models.RewardRedemption.user),
                joinedload(models.RewardRedemption.reward),
            )
            if reward_id is not None:
                parsed = _try_parse_id(reward_id)
                if parsed is None:
                    return []
                query = query.filter(models.RewardRedemption.reward_id == parsed)
            rows = query.order_by(
                models.RewardRedemption.redeemed_at.desc(), models.RewardRedemption.redemption_id.desc()
            ).all()
            return [redemption_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    def _feedback_query(self, session):
        return session.query(models.Feedback).options(
            joinedload(models.Feedback.user),
            joinedload(models.Feedback.event),
        )

    def get_feedback(self) -> List[Feedback]:
        with self.db.get_session() as session:
            rows = self._feedback_query(session).order_by(
                models.Feedback.submitted_at.desc(), models.Feedback.feedback_id.desc()
            ).all()
            return [feedback_from_row(row) for row in rows]

    def get_feedback_item(self, feedback_id: str) -> Optional[Feedback]:
        parsed = _try_parse_id(feedback_id)
        if parsed is None:
            return None
        with self.db.get_session() as session:
            row = self._feedback_query(session).filter(models.Feedback.feedback_id == parsed).first()
            return feedback_from_row(row) if row else None

    def create_feedback(self, feedback_data: FeedbackCreate) -> ServiceResult[Feedback]:
        try:
            user_id = parse_entity_id(feedback_data.user_id)
            event_id = parse_entity_id(feedback_data.event_id) if feedback_data.event_id else None
            with self.db.get_session() as session:
                if session.get(models.User, user_id) is None:
                    return ServiceResult(error="User not found")
                if event_id is not None and session.get(models.Event, event_id) is None:
                    return ServiceResult(error="Event not found")
                row = models.Feedback(
                    user_id=user_id,
                    event_id=event_id,
                    rating=feedback_data.rating,
                    comment=feedback_data.message,
                )
                session.add(row)
                session.flush()
                session.refresh(row)
                feedback = feedback_from_row(row)
            logger.info(f"Created feedback {feedback.id} from user {user_id}")
            return ServiceResult(data=feedback)
        except Exception as e:
            logger.error(f"Failed to create feedback: {e}")
            return ServiceResult(error=_error_message(e))

    def update_feedback(self, feedback_id: str, feedback_data: FeedbackUpdate) -> ServiceResult[Feedback]:
        try:
            changes = feedback_data.model_dump(exclude_unset=True)
            with self.db.get_session() as session:
                row = session.get(models.Feedback, parse_entity_id(feedback_id))
                if row is None:
                    return ServiceResult(error="Feedback not found")
                if "rating" in changes:
                    row.rating = changes["rating"]
                if changes.get("message") is not None:
                    row.comment = changes["message"]
                if changes.get("is_read") is not None:
                    row.is_read = changes["is_read"]
                session.flush()
                feedback = feedback_from_row(row)
            logger.info(f"Updated feedback {feedback_id}: {sorted(changes)}")
            return ServiceResult(data=feedback)
        except Exception as e:
            logger.error(f"Failed to update feedback {feedback_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def delete_feedback(self, feedback_id: str) -> DeleteResult:
        return self._delete(models.Feedback, feedback_id, "Feedback")

    def mark_feedback_as_read(self, feedback_id: str) -> DeleteResult:
        result = self.update_feedback(feedback_id, FeedbackUpdate(is_read=True))
        return DeleteResult(error=result.error)

    # ------------------------------------------------------------------
    # Missions
    # ------------------------------------------------------------------
    def _submission_counts(self, session, mission_ids: Optional[List[int]] = None) -> Dict[int, int]:
        query = session.query(
            models.MissionSubmission.mission_id,
            func.count(models.MissionSubmission.submission_id)
        )
        if mission_ids is not None:
            query = query.filter(models.MissionSubmission.mission_id.in_(mission_ids))
        return dict(query.group_by(models.MissionSubmission.mission_id).all())

    def get_missions(self) -> List[Mission]:
        now = utcnow()
        with self.db.get_session() as session:
            rows = session.query(models.Mission).order_by(
                models.Mission.created_at.desc(), models.Mission.mission_id.desc()
            ).all()
            counts = self._submission_counts(session)
            return [mission_from_row(row, counts.get(row.mission_id, 0), now) for row in rows]

    def get_mission(self, mission_id: str) -> Optional[Mission]:
        parsed = _try_parse_id(mission_id)
        if parsed is None:
            return None
        with self.db.get_session() as session:
            row = session.get(models.Mission, parsed)
            if row is None:
                return None
            counts = self._submission_counts(session, [parsed])
            return mission_from_row(row, counts.get(parsed, 0))

    def create_mission(self, mission_data: MissionCreate) -> ServiceResult[Mission]:
        try:
            title = _clean(mission_data.title)
            if not title:
                raise ValueError("Mission title is required")
            with self.db.get_session() as session:
                row = models.Mission(
                    title=title,
                    description=_clean(mission_data.description) or "",
                    points_reward=mission_data.points,
                    start_date=to_naive_utc(mission_data.start_date),
                    end_date=to_naive_utc(mission_data.end_date),
                )
                session.add(row)
                session.flush()
                mission = mission_from_row(row, 0)
            logger.info(f"Created mission {mission.id}: {mission.title}")
            return ServiceResult(data=mission)
        except Exception as e:
            logger.error(f"Failed to create mission: {e}")
            return ServiceResult(error=_error_message(e))

    def update_mission(self, mission_id: str, mission_data: MissionUpdate) -> ServiceResult[Mission]:
        try:
            changes = mission_data.model_dump(exclude_unset=True)
            parsed = parse_entity_id(mission_id)
            with self.db.get_session() as session:
                row = session.get(models.Mission, parsed)
                if row is None:
                    return ServiceResult(error="Mission not found")
                if changes.get("title") is not None:
                    row.title = _clean(changes["title"])
                if "description" in changes:
                    row.description = changes["description"]
                if changes.get("points") is not None:
                    row.points_reward = changes["points"]
                if changes.get("start_date") is not None:
                    row.start_date = to_naive_utc(changes["start_date"])
                if changes.get("end_date") is not None:
                    row.end_date = to_naive_utc(changes["end_date"])
                row.updated_at = utcnow()
                session.flush()
                counts = self._submission_counts(session, [parsed])
                mission = mission_from_row(row, counts.get(parsed, 0))
            logger.info(f"Updated mission {mission_id}: {sorted(changes)}")
            return ServiceResult(data=mission)
        except Exception as e:
            logger.error(f"Failed to update mission {mission_id}: {e}")
            return ServiceResult(error=_error_message(e))

    def delete_mission(self, mission_id: str) -> DeleteResult:
        return self._delete(models.Mission, mission_id, "Mission")

    def get_mission_submissions(self, mission_id: Optional[str] = None) -> List[MissionSubmission]:
        with self.db.get_session() as session:
            query = session.query(models.MissionSubmission).options(
                joinedload(models.MissionSubmission.user)
            )
            if mission_id is not None:
                parsed = _try_parse_id(mission_id)
                if parsed is None:
                    return []
                query = query.filter(models.MissionSubmission.mission_id == parsed)
            rows = query.order_by(
                models.MissionSubmission.created_at.desc(), models.MissionSubmission.submission_id.desc()
            ).all()
            return [submission_from_row(row) for row in rows]

    def _transition_submission(self, user_id: str, mission_id: str, status: SubmissionStatus) -> ServiceResult[MissionSubmission]:
        try:
            with self.db.get_session() as session:
                rows = session.query(models.MissionSubmission).options(
                    joinedload(models.MissionSubmission.user)
                ).filter(
                    models.MissionSubmission.user_id == parse_entity_id(user_id),
                    models.MissionSubmission.mission_id == parse_entity_id(mission_id),
                ).order_by(models.MissionSubmission.created_at.desc()).all()
                # Status is normalized on read, so legacy "PENDING" rows match too
                row = next((r for r in rows if SubmissionStatus(r.status) == SubmissionStatus.PENDING), None)
                if row is None:
                    return ServiceResult(error="No pending submission found")
                row.status = status
                row.updated_at = utcnow()
                session.flush()
                submission = submission_from_row(row)
            logger.info(f"Submission {submission.id} ({user_id}/{mission_id}) -> {status.value}")
            return ServiceResult(data=submission)
        except Exception as e:
            logger.error(f"Failed to set submission {user_id}/{mission_id} to {status.value}: {e}")
            return ServiceResult(error=_error_message(e))

    def approve_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]:
        return self._transition_submission(user_id, mission_id, SubmissionStatus.APPROVED)

    def reject_submission(self, user_id: str, mission_id: str) -> ServiceResult[MissionSubmission]:
        return self._transition_submission(user_id, mission_id, SubmissionStatus.REJECTED)

    # ------------------------------------------------------------------
    # Admin history
    # ------------------------------------------------------------------
    def get_admin_history(self, limit: int = 100) -> List[AdminHistory]:
        with self.db.get_session() as session:
            rows = session.query(models.AdminActivityLog).options(
                joinedload(models.AdminActivityLog.admin)
            ).order_by(
                models.AdminActivityLog.created_at.desc(), models.AdminActivityLog.log_id.desc()
            ).limit(limit).all()
            return [history_from_row(row) for row in rows]

    def log_admin_action(self, entry: AdminLogEntry) -> ServiceResult[AdminHistory]:
        try:
            with self.db.get_session() as session:
                row = models.AdminActivityLog(
                    admin_id=entry.admin_id,
                    action_type=entry.action_type,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id or 1,
                    details=entry.details,
                    created_at=to_naive_utc(entry.created_at),
                )
                session.add(row)
                session.flush()
                session.refresh(row)
                history = history_from_row(row)
            return ServiceResult(data=history)
        except Exception as e:
            logger.error(f"Failed to write admin activity log: {e}")
            return ServiceResult(error=_error_message(e))

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def get_dashboard_stats(self) -> DashboardStats:
        now = utcnow()
        with self.db.get_session() as session:
            total_users = session.query(func.count(models.User.user_id)).scalar() or 0
            active_events = session.query(func.count(models.Event.event_id)).filter(
                models.Event.end_date >= now
            ).scalar() or 0
            rewards_redeemed = session.query(func.count(models.RewardRedemption.redemption_id)).scalar() or 0
            unique_participants = session.query(
                func.count(func.distinct(models.EventParticipant.user_id))
            ).scalar() or 0

        engagement_rate = math.floor(unique_participants / total_users * 100 + 0.5) if total_users else 0
        return DashboardStats(
            total_users=total_users,
            active_events=active_events,
            rewards_redeemed=rewards_redeemed,
            engagement_rate=engagement_rate,
        )

    def get_monthly_engagement(self) -> List[MonthlyEngagement]:
        months = []
        with self.db.get_session() as session:
            for label, year, start, end in month_windows(utcnow(), config.ENGAGEMENT_MONTHS):
                participants = session.query(
                    func.count(func.distinct(models.EventParticipant.user_id))
                ).filter(
                    models.EventParticipant.registered_at >= start,
                    models.EventParticipant.registered_at < end,
                ).scalar() or 0
                events = session.query(func.count(models.Event.event_id)).filter(
                    models.Event.start_date >= start,
                    models.Event.start_date < end,
                ).scalar() or 0
                feedback = session.query(func.count(models.Feedback.feedback_id)).filter(
                    models.Feedback.submitted_at >= start,
                    models.Feedback.submitted_at < end,
                ).scalar() or 0
                redeemed = session.query(func.count(models.RewardRedemption.redemption_id)).filter(
                    models.RewardRedemption.redeemed_at >= start,
                    models.RewardRedemption.redeemed_at < end,
                ).scalar() or 0
                months.append(MonthlyEngagement(
                    month=label,
                    year=year,
                    participants=participants,
                    events=events,
                    feedback=feedback,
                    rewards_redeemed=redeemed,
                ))
        return months

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
        if self.s3_client is None:
            return ImageUploadResult(success=False, error="Image storage is not configured")
        try:
            key = image_object_key(folder, image.filename)
            self.s3_client.upload_fileobj(
                io.BytesIO(image.content),
                key,
                content_type=image.content_type,
                metadata={"original_filename": sanitize_filename(image.filename)},
            )
            return ImageUploadResult(success=True, image_url=self.s3_client.get_public_url(key), image_id=key)
        except Exception as e:
            logger.error(f"Image upload failed: {e}")
            return ImageUploadResult(success=False, error=_error_message(e))

    def delete_image(self, image_id: str) -> ImageDeleteResult:
        if self.s3_client is None:
            return ImageDeleteResult(success=False, error="Image storage is not configured")
        try:
            if not self.s3_client.file_exists(image_id):
                return ImageDeleteResult(success=False, error="Image not found")
            self.s3_client.delete_file(image_id)
            return ImageDeleteResult(success=True)
        except Exception as e:
            logger.error(f"Image delete failed for {image_id}: {e}")
            return ImageDeleteResult(success=False, error=_error_message(e))
