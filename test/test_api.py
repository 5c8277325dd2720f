from datetime import timedelta

import pytest

import config
from core.entities import UserRole
from core.utils import utcnow


def history_details(client, **params):
    response = client.get("/api/admin/history", params=params)
    assert response.status_code == 200
    return [item["details"] for item in response.json()]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["checks"]["data_service"] == {"status": "ok", "type": "database"}
    assert body["checks"]["admin_log"]["remote_available"] is True


def test_requires_bearer_token(client):
    del client.headers["Authorization"]
    assert client.get("/api/users").status_code in (401, 403)


def test_invalid_token(client):
    client.headers["Authorization"] = "Bearer garbage"
    assert client.get("/api/users").status_code == 401


def test_non_admin_is_forbidden(client, service):
    member = service.sign_up("member@example.com", "member-pass", "Mel Member", UserRole.USER).data
    client.headers["Authorization"] = f"Bearer {member.access_token}"
    response = client.get("/api/users")
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_uninitialized_service(client, monkeypatch):
    monkeypatch.setattr(config, "data_service", None)
    assert client.get("/api/events").status_code == 503


def test_login_is_audited(client):
    response = client.post("/api/auth/login", json={"email": "admin@ecowave.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    body = response.json()
    assert body["token"] == body["access_token"]
    assert body["user"]["role"] == "admin"

    assert history_details(client)[0] == "Admin logged in: admin@ecowave.com"


def test_login_rejects_bad_password(client):
    response = client.post("/api/auth/login", json={"email": "admin@ecowave.com", "password": "wrong"})
    assert response.status_code == 401


def test_login_rejects_non_admin(client, service):
    service.sign_up("member@example.com", "member-pass", "Mel Member", UserRole.USER)
    response = client.post("/api/auth/login", json={"email": "member@example.com", "password": "member-pass"})
    assert response.status_code == 403


def test_me(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["email"] == "admin@ecowave.com"


def test_reward_crud_is_audited(client):
    created = client.post("/api/rewards", json={"name": "Mug", "points_required": 100, "stock": 5})
    assert created.status_code == 201
    reward_id = created.json()["id"]

    updated = client.put(f"/api/rewards/{reward_id}", json={"stock": 0})
    assert updated.status_code == 200
    assert updated.json()["is_active"] is False

    assert client.delete(f"/api/rewards/{reward_id}").status_code == 200
    assert client.get(f"/api/rewards/{reward_id}").status_code == 404

    assert history_details(client) == [
        'Deleted reward: "Mug"',
        'Updated reward: "Mug" - stock: 5 → 0',
        'Created reward: "Mug" (100 points)',
    ]


def test_role_change_is_audited(client):
    user = client.post("/api/users", json={"email": "kim@example.com", "full_name": "Kim Lee"}).json()

    response = client.put(f"/api/users/{user['id']}/role", json={"role": "admin"})
    assert response.status_code == 200
    assert response.json()["role"] == "admin"

    history = client.get("/api/admin/history").json()
    assert history[0]["action_type"] == "UPDATE"
    assert history[0]["entity_type"] == "USER"
    assert history[0]["details"] == "Changed role: kim@example.com from user to admin"
    assert history[0]["admin_email"] == "admin@ecowave.com"


def test_points_adjustment(client):
    user = client.post("/api/users", json={"email": "kim@example.com", "full_name": "Kim Lee", "points": 10}).json()

    response = client.post(f"/api/users/{user['id']}/points", json={"points": 40})
    assert response.json()["points"] == 50
    assert history_details(client)[0] == "Added 40 points to kim@example.com"

    response = client.post(f"/api/users/{user['id']}/points", json={"points": -100})
    assert response.status_code == 400
    assert response.json()["detail"] == "Points cannot be negative"


def test_update_missing_event(client):
    response = client.put("/api/events/999", json={"title": "Ghost"})
    assert response.status_code == 404


def test_event_window_is_validated(client):
    start = utcnow() + timedelta(days=2)
    response = client.post("/api/events", json={
        "title": "Backwards",
        "start_date": start.isoformat(),
        "end_date": (start - timedelta(hours=1)).isoformat(),
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "End date must be after start date"


def test_event_from_bare_date(client):
    response = client.post("/api/events", json={"title": "Tree Planting", "date": "2030-04-22", "location": "Park"})
    assert response.status_code == 201
    assert response.json()["start_date"].startswith("2030-04-22T09:00")
    assert history_details(client)[0] == 'Created event: "Tree Planting" on 2030-04-22'


def test_submission_review(client, seed_mission):
    user_id, mission_id = seed_mission

    pending = client.get("/api/missions/submissions", params={"mission_id": mission_id}).json()
    assert [s["status"] for s in pending] == ["pending"]

    response = client.post(f"/api/missions/{mission_id}/submissions/{user_id}/approve")
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert history_details(client)[0] == 'Approved submission from River Song for "Beach Cleanup"'

    again = client.post(f"/api/missions/{mission_id}/submissions/{user_id}/reject")
    assert again.status_code == 400
    assert again.json()["detail"] == "No pending submission found"


def test_feedback_mark_as_read(client, seed_mission):
    user_id, _ = seed_mission
    item = client.post("/api/feedback", json={"user_id": user_id, "rating": 5, "message": "Loved it"}).json()

    response = client.post(f"/api/feedback/{item['id']}/read")
    assert response.status_code == 200
    assert client.get(f"/api/feedback/{item['id']}").json()["is_read"] is True
    assert history_details(client)[0] == "Marked feedback as read from River Song"


def test_dashboard(client):
    stats = client.get("/api/dashboard/stats").json()
    assert stats["total_users"] == 1
    assert stats["engagement_rate"] == 0

    months = client.get("/api/dashboard/engagement").json()
    assert len(months) == 8


def test_history_export_is_audited(client):
    client.post("/api/rewards", json={"name": "Mug", "points_required": 100, "stock": 5})

    response = client.get("/api/admin/history/export", params={"format": "csv", "range": "today"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'Created reward: ""Mug"" (100 points)' in response.text

    assert history_details(client)[0] == "Exported system data - admin history (1 records, range: today)"


def test_history_falls_back_when_remote_is_down(client, service, admin_logger, monkeypatch):
    def unavailable(limit=100):
        raise ConnectionError("down")

    admin_logger.database_available = False
    admin_logger.log_action("DELETE", "EVENT", "Deleted event offline", 3)
    monkeypatch.setattr(service, "get_admin_history", unavailable)

    # Token lookup still works; only the history read fails
    assert history_details(client) == ["Deleted event offline"]


def test_image_upload_without_storage(client):
    response = client.post(
        "/api/images",
        files={"file": ("leaf.png", b"\x89PNG", "image/png")},
        data={"folder": "events"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Image storage is not configured"


@pytest.mark.parametrize("path", ["/api/users/abc", "/api/missions/abc", "/api/feedback/abc"])
def test_invalid_ids_are_not_found(client, path):
    assert client.get(path).status_code == 404


def test_register_requires_an_admin(client, service):
    del client.headers["Authorization"]
    payload = {"email": "mallory@example.com", "password": "pw", "full_name": "Mal Lory", "role": "admin"}
    assert client.post("/api/auth/register", json=payload).status_code in (401, 403)

    member = service.sign_up("member@example.com", "member-pass", "Mel Member", UserRole.USER).data
    client.headers["Authorization"] = f"Bearer {member.access_token}"
    assert client.post("/api/auth/register", json=payload).status_code == 403

    assert service.sign_in("mallory@example.com", "pw").error == "Invalid login credentials"


def test_registered_account_defaults_to_user(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "new@example.com", "password": "new-pass", "full_name": "Nia New"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["role"] == "user"
    assert history_details(client)[0].startswith("Created user: new@example.com")

    client.headers["Authorization"] = f"Bearer {body['access_token']}"
    assert client.get("/api/users").status_code == 403


def test_audit_entries_follow_the_requesting_admin(client, service, admin):
    second = service.sign_up("bea@ecowave.com", "bea-pass", "Bea Boss", UserRole.ADMIN).data

    client.headers["Authorization"] = f"Bearer {second.access_token}"
    assert client.post("/api/rewards", json={"name": "Mug", "points_required": 100, "stock": 5}).status_code == 201
    client.headers["Authorization"] = f"Bearer {admin.access_token}"
    assert client.post("/api/rewards", json={"name": "Cap", "points_required": 50, "stock": 5}).status_code == 201

    history = client.get("/api/admin/history").json()
    assert [(h["details"], h["admin_email"]) for h in history] == [
        ('Created reward: "Cap" (50 points)', "admin@ecowave.com"),
        ('Created reward: "Mug" (100 points)', "bea@ecowave.com"),
    ]


def test_oversized_image_upload_is_rejected(client, monkeypatch):
    monkeypatch.setattr(config, "MAX_IMAGE_SIZE_MB", 1)
    response = client.post(
        "/api/images",
        files={"file": ("huge.png", b"\x89PNG" + b"\0" * (1024 * 1024), "image/png")},
        data={"folder": "events"},
    )
    assert response.status_code == 413
    assert response.json()["detail"] == "File too large. Maximum size is 1MB."
