import contextvars
from unittest.mock import MagicMock

import pytest
import requests

import config
from core.entities import EventUpdate, UploadedImage, UserCreate
from services.data_service import request_access_token
from services.rest_data_service import ApiError, RestDataService

USER = {"id": "5", "email": "ada@ecowave.com", "full_name": "Ada Admin", "role": "admin", "points": 0}


def make_response(status_code=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason
    response.content = b"" if body is None else b"x"
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def rest(session, monkeypatch):
    monkeypatch.setattr(config, "API_TOKEN", None)
    return RestDataService("https://api.example.com/", timeout=5, session=session, service_token=None)


def sent(session):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


def as_caller(token, func, *args):
    """Run func as if serving a request authenticated with token."""
    def call():
        request_access_token.set(token)
        return func(*args)
    return contextvars.copy_context().run(call)


def test_sign_in_returns_token_without_keeping_it(rest, session):
    session.request.return_value = make_response(body={"token": "abc", "user": USER})

    result = rest.sign_in("ada@ecowave.com", "pw")
    assert result.error is None
    assert result.data.access_token == "abc"

    session.request.return_value = make_response(body=[USER])
    rest.get_users()
    method, url, kwargs = sent(session)
    assert (method, url) == ("GET", "https://api.example.com/api/users")
    assert "Authorization" not in kwargs["headers"]
    assert kwargs["timeout"] == 5


def test_each_request_carries_its_callers_token(rest, session):
    session.request.return_value = make_response(body=[USER])
    as_caller("ADMIN-A", rest.get_users)
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer ADMIN-A"

    # Another account signing in meanwhile changes nothing for admin A
    session.request.return_value = make_response(body={"token": "MEMBER-B", "user": dict(USER, role="user")})
    rest.sign_in("member@example.com", "pw")

    session.request.return_value = make_response(body=[USER])
    as_caller("ADMIN-A", rest.get_users)
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer ADMIN-A"
    as_caller("MEMBER-B", rest.get_users)
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer MEMBER-B"


def test_service_token_is_the_default(session):
    rest = RestDataService("https://api.example.com", session=session, service_token="svc")
    session.request.return_value = make_response(body=[])

    rest.get_events()
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer svc"
    as_caller("ADMIN-A", rest.get_events)
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer ADMIN-A"


def test_sign_in_failure_is_an_error_result(rest, session):
    session.request.return_value = make_response(401, reason="Unauthorized")
    result = rest.sign_in("ada@ecowave.com", "bad")
    assert result.data is None
    assert result.error == "Login failed"


def test_sign_out_only_ends_the_given_session(rest, session):
    session.request.return_value = make_response(204)
    assert rest.sign_out("ADMIN-A").error is None
    method, url, kwargs = sent(session)
    assert (method, url) == ("POST", "https://api.example.com/api/auth/logout")
    assert kwargs["headers"]["Authorization"] == "Bearer ADMIN-A"

    session.request.return_value = make_response(body=[])
    as_caller("ADMIN-B", rest.get_events)
    assert sent(session)[2]["headers"]["Authorization"] == "Bearer ADMIN-B"


def test_sign_out_without_token_is_a_no_op(rest, session):
    assert rest.sign_out().error is None
    session.request.assert_not_called()


def test_non_2xx_read_raises_api_error(rest, session):
    session.request.return_value = make_response(500, reason="Internal Server Error")
    with pytest.raises(ApiError) as exc_info:
        rest.get_rewards()
    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "API Error: Internal Server Error"


def test_transport_failure_raises_api_error(rest, session):
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(ApiError):
        rest.get_missions()


def test_missing_record_reads_as_none(rest, session):
    session.request.return_value = make_response(404, reason="Not Found")
    assert rest.get_user("9") is None


def test_write_failure_becomes_error_result(rest, session):
    session.request.return_value = make_response(400, reason="Bad Request")
    result = rest.create_user(UserCreate(email="kim@example.com", full_name="Kim Lee"))
    assert result.data is None
    assert result.error == "API Error: Bad Request"


def test_partial_update_sends_only_set_fields(rest, session):
    session.request.return_value = make_response(body={
        "id": "3", "title": "Cleanup", "start_date": "2030-01-05T09:00:00",
        "end_date": "2030-01-05T17:00:00", "status": "upcoming", "location": "Harbor",
    })
    result = rest.update_event("3", EventUpdate(location="Harbor"))
    assert result.data.location == "Harbor"

    method, url, kwargs = sent(session)
    assert (method, url) == ("PUT", "https://api.example.com/api/events/3")
    assert kwargs["json"] == {"location": "Harbor"}


def test_delete_with_empty_body(rest, session):
    session.request.return_value = make_response(204)
    assert rest.delete_reward("2").error is None
    assert sent(session)[:2] == ("DELETE", "https://api.example.com/api/rewards/2")


def test_submission_filter_and_review_endpoints(rest, session):
    session.request.return_value = make_response(body=[])
    rest.get_mission_submissions("4")
    assert sent(session)[2]["params"] == {"mission_id": "4"}

    session.request.return_value = make_response(body={
        "id": "1", "user_id": "8", "mission_id": "4", "status": "APPROVED",
    })
    result = rest.approve_submission("8", "4")
    assert result.data.status == "approved"
    assert sent(session)[1] == "https://api.example.com/api/missions/4/submissions/8/approve"


def test_image_upload_is_validated_before_sending(rest, session):
    result = rest.upload_image(UploadedImage(filename="notes.txt", content_type="text/plain", content=b"x"))
    assert not result.success
    session.request.assert_not_called()


def test_image_delete_quotes_key(rest, session):
    session.request.return_value = make_response(204)
    assert rest.delete_image("events/my photo.png").success
    assert sent(session)[1] == "https://api.example.com/api/images/events/my%20photo.png"
