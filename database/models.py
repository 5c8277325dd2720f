"""
Database models for the hosted EcoWave Hub backend schema.

Column names follow the backend's native schema (first_name/last_name,
redeemable_points, thumbnail_image, ...). The canonical entity shapes live in
core.entities; services.database_data_service maps between the two.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    ForeignKey, Index, TypeDecorator
)
from sqlalchemy.orm import declarative_base, relationship
import enum

from core.entities import AdminActionType, AdminEntityType, SubmissionStatus
from core.utils import utcnow

Base = declarative_base()


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        try:
            return self.enum_class(value).value
        except ValueError:
            return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Application user (admins and program participants)."""
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    sso_id = Column(String(255), unique=True, nullable=True)  # Auth provider id, or manual-<ts>-<rand>
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), default="user", nullable=False)
    redeemable_points = Column(Integer, default=0, nullable=False)
    profile_picture = Column(String(500), nullable=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    participations = relationship("EventParticipant", back_populates="user", cascade="all, delete-orphan")
    redemptions = relationship("RewardRedemption", back_populates="user", cascade="all, delete-orphan")
    feedback = relationship("Feedback", back_populates="user", cascade="all, delete-orphan")
    submissions = relationship("MissionSubmission", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_users_role', 'role'),
        Index('idx_users_created', 'created_at'),
    )


class Event(Base):
    """Sustainability event."""
    __tablename__ = "events"

    event_id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=True)
    points = Column(Integer, default=100, nullable=False)
    thumbnail_image = Column(String(500), nullable=True)
    max_participants = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    participants = relationship("EventParticipant", back_populates="event", cascade="all, delete-orphan")
    feedback = relationship("Feedback", back_populates="event")

    __table_args__ = (
        Index('idx_events_start', 'start_date'),
        Index('idx_events_end', 'end_date'),
    )


class EventParticipant(Base):
    """Registration of a user for an event."""
    __tablename__ = "event_participants"

    participant_id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    registered_at = Column(DateTime, default=utcnow, nullable=False)

    event = relationship("Event", back_populates="participants")
    user = relationship("User", back_populates="participations")

    __table_args__ = (
        Index('idx_participants_event', 'event_id'),
        Index('idx_participants_user', 'user_id'),
    )


class Reward(Base):
    """Reward redeemable with points."""
    __tablename__ = "rewards"

    reward_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    points_required = Column(Integer, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    redemptions = relationship("RewardRedemption", back_populates="reward", cascade="all, delete-orphan")


class RewardRedemption(Base):
    """Append-only record of a reward being redeemed."""
    __tablename__ = "reward_redemptions"

    redemption_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    reward_id = Column(Integer, ForeignKey("rewards.reward_id", ondelete="CASCADE"), nullable=False)
    points_deducted = Column(Integer, default=0, nullable=False)
    redeemed_at = Column(DateTime, default=utcnow, nullable=False)
    status = Column(String(50), default="completed", nullable=True)

    user = relationship("User", back_populates="redemptions")
    reward = relationship("Reward", back_populates="redemptions")

    __table_args__ = (
        Index('idx_redemptions_reward', 'reward_id'),
        Index('idx_redemptions_redeemed', 'redeemed_at'),
    )


class Feedback(Base):
    """Event or general feedback left by a user."""
    __tablename__ = "feedback"

    feedback_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.event_id", ondelete="SET NULL"), nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5
    comment = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="feedback")
    event = relationship("Event", back_populates="feedback")

    __table_args__ = (
        Index('idx_feedback_submitted', 'submitted_at'),
    )


class Mission(Base):
    """Time-boxed photo mission."""
    __tablename__ = "missions"

    mission_id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    points_reward = Column(Integer, default=100, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    submissions = relationship("MissionSubmission", back_populates="mission", cascade="all, delete-orphan")


class MissionSubmission(Base):
    """A user's photo submission for a mission."""
    __tablename__ = "mission_submissions"

    submission_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    mission_id = Column(Integer, ForeignKey("missions.mission_id", ondelete="CASCADE"), nullable=False)
    photo_upload_count = Column(Integer, default=0, nullable=False)
    status = Column(EnumValue(SubmissionStatus, 20), default=SubmissionStatus.PENDING, nullable=False)
    month_year = Column(String(7), nullable=True)  # YYYY-MM
    photo_path_1 = Column(String(500), nullable=True)
    photo_path_2 = Column(String(500), nullable=True)
    photo_path_3 = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="submissions")
    mission = relationship("Mission", back_populates="submissions")

    __table_args__ = (
        Index('idx_submissions_mission', 'mission_id'),
        Index('idx_submissions_user_mission', 'user_id', 'mission_id'),
    )


class AdminActivityLog(Base):
    """Append-only audit trail of administrative actions."""
    __tablename__ = "admin_activity_log"

    log_id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    action_type = Column(EnumValue(AdminActionType, 20), nullable=False)
    entity_type = Column(EnumValue(AdminEntityType, 20), nullable=False)
    entity_id = Column(Integer, nullable=False, default=1)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    admin = relationship("User")

    __table_args__ = (
        Index('idx_admin_log_admin', 'admin_id'),
        Index('idx_admin_log_created', 'created_at'),
        Index('idx_admin_log_entity', 'entity_type', 'entity_id'),
        Index('idx_admin_log_action', 'action_type'),
    )
