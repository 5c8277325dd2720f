from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from core.entities import (
    AdminActionType, AdminEntityType, AdminLogEntry, EventCreate, EventUpdate,
    FeedbackCreate, MissionCreate, RewardCreate, RewardUpdate, SubmissionStatus,
    UploadedImage, UserCreate, UserRole, UserUpdate,
)
from core.utils import utcnow
from database import models
from services.database_data_service import DatabaseDataService


def test_sign_in_returns_session_for_valid_credentials(service, admin):
    result = service.sign_in("ADMIN@ecowave.com", "s3cret-pass")
    assert result.error is None
    assert result.data.user.email == "admin@ecowave.com"
    assert result.data.user.full_name == "Ada Admin"
    assert service.get_current_user(result.data.access_token).id == admin.user.id


def test_sign_in_rejects_wrong_password(service, admin):
    result = service.sign_in("admin@ecowave.com", "nope")
    assert result.data is None
    assert result.error == "Invalid login credentials"


def test_sign_up_rejects_duplicate_email(service, admin):
    result = service.sign_up("admin@ecowave.com", "other", "Someone Else")
    assert result.error == "User already registered"


def test_get_current_user_with_garbage_token(service):
    assert service.get_current_user("not-a-token") is None


def test_create_user_splits_name_and_generates_sso_id(service, database):
    result = service.create_user(UserCreate(email="Sam.Green@Example.com", full_name="Sam Green", points=25))
    assert result.error is None
    user = result.data
    assert user.email == "sam.green@example.com"
    assert (user.first_name, user.last_name) == ("Sam", "Green")
    assert user.role == "user"
    assert user.points == 25

    with database.get_session() as session:
        row = session.get(models.User, int(user.id))
        assert row.sso_id.startswith("manual-")
        assert row.username == "sam.green"


def test_update_user_only_touches_given_fields(service):
    user = service.create_user(UserCreate(email="kim@example.com", full_name="Kim Lee", points=10)).data

    result = service.update_user(user.id, UserUpdate(points=40))
    assert result.error is None
    assert result.data.points == 40
    assert result.data.full_name == "Kim Lee"
    assert result.data.email == "kim@example.com"


def test_update_user_role(service):
    user = service.create_user(UserCreate(email="kim@example.com", full_name="Kim Lee")).data
    result = service.update_user_role(user.id, UserRole.ADMIN)
    assert result.data.role == "admin"


def test_add_points_never_goes_negative(service):
    user = service.create_user(UserCreate(email="kim@example.com", full_name="Kim Lee", points=10)).data

    assert service.add_points_to_user(user.id, 15).data.points == 25
    result = service.add_points_to_user(user.id, -100)
    assert result.error == "Points cannot be negative"
    assert service.get_user(user.id).points == 25


def test_invalid_or_missing_ids(service):
    assert service.get_user("abc") is None
    assert service.get_event("999") is None
    assert service.update_user("abc", UserUpdate(points=1)).error == "Invalid id: abc"
    assert service.delete_user("999").error == "User not found"


def test_create_event_from_bare_date(service):
    result = service.create_event(EventCreate(title="Tree Planting", date=date(2030, 4, 22), location="Park"))
    assert result.error is None
    event = result.data
    assert event.start_date == datetime(2030, 4, 22, 9, 0)
    assert event.end_date == datetime(2030, 4, 22, 17, 0)
    assert event.date == "2030-04-22"
    assert event.status == "upcoming"
    assert event.points == 100
    assert event.max_participants == 50


def test_create_event_requires_a_date(service):
    result = service.create_event(EventCreate(title="No Date"))
    assert result.data is None
    assert result.error == "Event date is required"


def test_update_event_keeps_unset_fields(service):
    event = service.create_event(EventCreate(title="Cleanup", date=date(2030, 1, 5), location="Pier", points=50)).data

    result = service.update_event(event.id, EventUpdate(location="Harbor"))
    assert result.data.location == "Harbor"
    assert result.data.points == 50
    assert result.data.title == "Cleanup"


def test_event_participant_count(service, database):
    event = service.create_event(EventCreate(title="Cleanup", date=date(2030, 1, 5))).data
    user = service.create_user(UserCreate(email="p@example.com", full_name="Pat")).data
    with database.get_session() as session:
        session.add(models.EventParticipant(event_id=int(event.id), user_id=int(user.id)))

    assert service.get_event(event.id).participant_count == 1
    assert service.get_events()[0].participant_count == 1


def test_reward_inactive_when_stock_runs_out(service):
    reward = service.create_reward(RewardCreate(name="Tote Bag", points_required=200, stock=3)).data
    assert reward.is_active
    assert reward.title == "Tote Bag"

    updated = service.update_reward(reward.id, RewardUpdate(stock=0)).data
    assert updated.stock == 0
    assert not updated.is_active
    assert updated.points_required == 200


def test_redemptions_are_filtered_by_reward(service, database):
    user = service.create_user(UserCreate(email="r@example.com", full_name="Rae Jones")).data
    tote = service.create_reward(RewardCreate(name="Tote Bag", points_required=200, stock=3)).data
    mug = service.create_reward(RewardCreate(name="Mug", points_required=100, stock=3)).data
    with database.get_session() as session:
        session.add(models.RewardRedemption(user_id=int(user.id), reward_id=int(tote.id), points_deducted=200))
        session.add(models.RewardRedemption(user_id=int(user.id), reward_id=int(mug.id), points_deducted=100))

    assert len(service.get_redemptions()) == 2
    redemptions = service.get_redemptions(tote.id)
    assert len(redemptions) == 1
    assert redemptions[0].reward_name == "Tote Bag"
    assert redemptions[0].user_name == "Rae Jones"


def test_feedback_lifecycle(service):
    user = service.create_user(UserCreate(email="f@example.com", full_name="Fay Wu")).data
    event = service.create_event(EventCreate(title="Cleanup", date=date(2030, 1, 5))).data

    created = service.create_feedback(FeedbackCreate(user_id=user.id, event_id=event.id, rating=4, message="Great"))
    assert created.error is None
    item = created.data
    assert item.event_title == "Cleanup"
    assert item.subject == "Event Feedback"
    assert not item.is_read

    assert service.mark_feedback_as_read(item.id).error is None
    assert service.get_feedback_item(item.id).is_read
    assert service.delete_feedback(item.id).error is None
    assert service.get_feedback() == []


def test_feedback_for_unknown_user(service):
    result = service.create_feedback(FeedbackCreate(user_id="42", message="Hello"))
    assert result.error == "User not found"


def test_mission_create_and_status(service):
    now = utcnow()
    mission = service.create_mission(MissionCreate(
        title="Plastic Free Week",
        points=75,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
    )).data
    assert mission.status == "active"
    assert mission.points == 75
    assert mission.submission_count == 0


def test_approve_pending_submission(service, seed_mission):
    user_id, mission_id = seed_mission

    result = service.approve_submission(user_id, mission_id)
    assert result.error is None
    assert result.data.status == SubmissionStatus.APPROVED
    assert result.data.photo_paths == ["missions/1/a.jpg", "missions/1/b.jpg"]
    assert result.data.user_name == "River Song"

    # Nothing left to review
    again = service.reject_submission(user_id, mission_id)
    assert again.error == "No pending submission found"


def test_reject_pending_submission(service, seed_mission):
    user_id, mission_id = seed_mission
    assert service.reject_submission(user_id, mission_id).data.status == SubmissionStatus.REJECTED
    assert service.get_mission(mission_id).submission_count == 1
    assert [s.status for s in service.get_mission_submissions(mission_id)] == [SubmissionStatus.REJECTED]


def test_admin_log_roundtrip(service, admin):
    entry = AdminLogEntry(
        admin_id=int(admin.user.id),
        action_type=AdminActionType.CREATE,
        entity_type=AdminEntityType.EVENT,
        entity_id=7,
        details='Created event: "Cleanup" on 2030-01-05',
        created_at=utcnow(),
    )
    result = service.log_admin_action(entry)
    assert result.error is None

    history = service.get_admin_history(limit=10)
    assert len(history) == 1
    assert history[0].action_type == "CREATE"
    assert history[0].entity_type == "EVENT"
    assert history[0].admin_name == "Ada Admin"
    assert history[0].admin_email == "admin@ecowave.com"


def test_dashboard_stats_engagement_rate(service, database):
    users = [service.create_user(UserCreate(email=f"u{i}@example.com", full_name=f"User {i}")).data for i in range(3)]
    event = service.create_event(EventCreate(title="Cleanup", date=utcnow().date() + timedelta(days=3))).data
    with database.get_session() as session:
        session.add(models.EventParticipant(event_id=int(event.id), user_id=int(users[0].id)))

    stats = service.get_dashboard_stats()
    assert stats.total_users == 3
    assert stats.active_events == 1
    assert stats.rewards_redeemed == 0
    # 1 of 3 users participated: 33.3% rounds to 33
    assert stats.engagement_rate == 33


def test_dashboard_stats_without_users(service):
    assert service.get_dashboard_stats().engagement_rate == 0


def test_monthly_engagement_covers_eight_months(service):
    service.create_event(EventCreate(title="Now", date=utcnow().date()))
    months = service.get_monthly_engagement()
    assert len(months) == 8
    assert months[-1].events == 1
    assert sum(m.events for m in months[:-1]) == 0


def test_upload_image_rejects_bad_type(service):
    image = UploadedImage(filename="notes.txt", content_type="text/plain", content=b"hello")
    result = service.upload_image(image)
    assert not result.success
    assert result.error


def test_upload_image_without_storage(service):
    image = UploadedImage(filename="leaf.png", content_type="image/png", content=b"\x89PNG")
    result = service.upload_image(image)
    assert not result.success
    assert result.error == "Image storage is not configured"


def test_upload_and_delete_image_with_storage(database):
    s3 = MagicMock()
    s3.get_public_url.side_effect = lambda key: f"https://cdn.example.com/{key}"
    s3.file_exists.return_value = True
    service = DatabaseDataService(database, s3_client=s3, secret_key="test-secret")

    image = UploadedImage(filename="leaf.png", content_type="image/png", content=b"\x89PNG")
    result = service.upload_image(image, "events")
    assert result.success
    assert result.image_id.startswith("events/")
    assert result.image_url == f"https://cdn.example.com/{result.image_id}"
    assert s3.upload_fileobj.call_args.kwargs["metadata"] == {"original_filename": "leaf.png"}

    assert service.delete_image(result.image_id).success
    s3.delete_file.assert_called_once_with(result.image_id)

    s3.file_exists.return_value = False
    missing = service.delete_image("events/gone.png")
    assert not missing.success
    assert missing.error == "Image not found"
