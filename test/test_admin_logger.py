import json
import threading
from unittest.mock import MagicMock

import config
from core.entities import AdminEntityType, ServiceResult
from services.admin_logger import LOCAL_LOG_KEY, AdminLogger, local_entry_to_history
from storage.local_store import MemoryStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class BrokenStore(MemoryStore):
    def set_item(self, key, value):
        raise OSError("disk full")


def unreachable_service():
    service = MagicMock()
    service.get_admin_history.side_effect = ConnectionError("connection refused")
    service.log_admin_action.side_effect = ConnectionError("connection refused")
    return service


def test_remote_write_when_available(admin_logger, service, store):
    assert admin_logger.test_database_connection()

    admin_logger.log_create(AdminEntityType.REWARD, "3", "raw", {"reward_name": "Mug", "points_required": 100})

    history = service.get_admin_history(limit=5)
    assert len(history) == 1
    assert history[0].details == 'Created reward: "Mug" (100 points)'
    assert history[0].entity_id == 3
    assert store.get_item(LOCAL_LOG_KEY) is None


def test_local_fallback_before_probe(admin_logger, service):
    admin_logger.log_delete(AdminEntityType.MISSION, "9", "raw", {"mission_title": "Beach", "submission_count": 2})

    assert service.get_admin_history() == []
    entries = admin_logger.get_local_entries()
    assert len(entries) == 1
    assert entries[0]["details"] == 'Deleted mission: "Beach" (2 submissions)'
    assert entries[0]["action_type"] == "DELETE"
    assert entries[0]["entity_type"] == "MISSION"
    assert entries[0]["id"].startswith("local-")


def test_local_fallback_is_capped_newest_first():
    logger = AdminLogger(unreachable_service(), MemoryStore())
    for i in range(105):
        logger.log_action("UPDATE", "EVENT", f"change {i}", i + 1)

    entries = logger.get_local_entries()
    assert len(entries) == 100
    assert entries[0]["details"] == "change 104"
    assert entries[-1]["details"] == "change 5"


def test_failed_remote_write_falls_back_and_marks_unavailable(admin_logger, service):
    admin_logger.test_database_connection()
    admin_logger.data_service = unreachable_service()

    admin_logger.log_action("UPDATE", "USER", "Promoted user", 4)

    assert not admin_logger.database_available
    assert admin_logger.get_local_entries()[0]["details"] == "Promoted user"


def test_error_result_from_remote_falls_back(store):
    service = MagicMock()
    service.log_admin_action.return_value = ServiceResult(error="permission denied")
    logger = AdminLogger(service, store)
    logger.test_database_connection()

    logger.log_action("CREATE", "EVENT", "Created event", 1)

    assert len(logger.get_local_entries()) == 1
    assert not logger.database_available


def test_never_raises_on_bad_input_or_storage_failure():
    logger = AdminLogger(unreachable_service(), BrokenStore())
    logger.log_action("NOT_AN_ACTION", "NOPE", "details", "abc", metadata="not a dict")
    logger.log_update(AdminEntityType.EVENT, None, "raw", {"fields_modified": ["points"], "old_values": None})
    logger.log_create(AdminEntityType.USER, object(), "raw", {"user_email": object()})
    logger.log_export(AdminEntityType.SYSTEM, "users.csv")


def test_invalid_entry_is_kept_locally(admin_logger):
    admin_logger.log_action("NOT_AN_ACTION", "USER", "odd", "x")
    entries = admin_logger.get_local_entries()
    assert entries[0]["action_type"] == "NOT_AN_ACTION"
    assert entries[0]["entity_id"] == 1


def test_corrupt_local_list_is_replaced(store):
    store.set_item(LOCAL_LOG_KEY, "{broken")
    logger = AdminLogger(unreachable_service(), store)
    logger.log_action("CREATE", "EVENT", "after corruption", 1)
    assert [e["details"] for e in json.loads(store.get_item(LOCAL_LOG_KEY))] == ["after corruption"]


def test_role_change_audit_entry(admin_logger, service):
    admin_logger.test_database_connection()
    admin_logger.log_update(
        AdminEntityType.USER,
        "12",
        "raw",
        {"user_email": "kim@example.com", "old_role": "user", "new_role": "admin"},
    )

    entry = service.get_admin_history(limit=1)[0]
    assert entry.action_type == "UPDATE"
    assert entry.entity_type == "USER"
    assert entry.details == "Changed role: kim@example.com from user to admin"


def test_reprobe_after_interval(store):
    service = MagicMock()
    service.get_admin_history.side_effect = [ConnectionError("down"), [], []]
    service.log_admin_action.return_value = ServiceResult()
    clock = FakeClock()
    logger = AdminLogger(service, store, reprobe_interval=60, clock=clock)

    assert not logger.test_database_connection()

    clock.now = 30
    logger.log_action("CREATE", "EVENT", "too early", 1)
    service.log_admin_action.assert_not_called()

    clock.now = 61
    logger.log_action("CREATE", "EVENT", "after interval", 1)
    assert logger.database_available
    service.log_admin_action.assert_called_once()
    assert [e["details"] for e in logger.get_local_entries()] == ["too early"]


def test_no_reprobe_when_disabled(store):
    service = unreachable_service()
    logger = AdminLogger(service, store, reprobe_interval=0)
    logger.log_action("CREATE", "EVENT", "one", 1)
    logger.log_action("CREATE", "EVENT", "two", 1)
    service.get_admin_history.assert_not_called()


def test_history_falls_back_to_local_entries(store):
    logger = AdminLogger(unreachable_service(), store, history_fallback_limit=2)
    for i in range(3):
        logger.log_action("DELETE", "REWARD", f"removed {i}", i + 1)

    history = logger.get_history(limit=10)
    assert [h.details for h in history] == ["removed 2", "removed 1"]
    assert history[0].admin_name == "System Admin"
    assert history[0].admin_email == "system@ecowave.com"
    assert history[0].id.startswith("local-")


def test_export_login_and_logout_details(store):
    logger = AdminLogger(unreachable_service(), store)
    logger.log_export(AdminEntityType.USER, "users.csv")
    logger.log_login(metadata={"user_email": "ada@ecowave.com"})
    logger.log_logout()

    details = [e["details"] for e in logger.get_local_entries()]
    assert details == [
        "Admin logged out",
        "Admin logged in: ada@ecowave.com",
        "Exported user data - users.csv",
    ]


def test_current_admin_id_is_stamped(admin_logger):
    admin_logger.set_current_admin_id("17")
    admin_logger.log_action("CREATE", "EVENT", "stamped", 1)
    assert admin_logger.get_local_entries()[0]["admin_id"] == 17

    admin_logger.set_current_admin_id("not-a-number")
    assert admin_logger.current_admin_id == 1


def test_concurrent_admins_keep_their_own_attribution(store):
    logger = AdminLogger(unreachable_service(), store)
    first_stamped = threading.Event()
    second_stamped = threading.Event()

    def first_admin():
        logger.set_current_admin_id(2)
        first_stamped.set()
        # The second admin stamps before this request logs its change
        second_stamped.wait(5)
        logger.log_update("EVENT", 10, "by admin 2")

    def second_admin():
        first_stamped.wait(5)
        logger.set_current_admin_id(3)
        second_stamped.set()
        logger.log_update("REWARD", 11, "by admin 3")

    threads = [threading.Thread(target=first_admin), threading.Thread(target=second_admin)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    admin_by_entity = {e["entity_id"]: e["admin_id"] for e in logger.get_local_entries()}
    assert admin_by_entity == {10: 2, 11: 3}


def test_unknown_admin_placeholder_comes_from_config(monkeypatch):
    monkeypatch.setattr(config, "SYSTEM_ADMIN_NAME", "Operations")
    monkeypatch.setattr(config, "SYSTEM_ADMIN_EMAIL", "ops@ecowave.com")
    history = local_entry_to_history({"id": "local-1", "action_type": "CREATE", "entity_type": "EVENT"})
    assert (history.admin_name, history.admin_email) == ("Operations", "ops@ecowave.com")
