from storage.local_store import JsonFileStore, MemoryStore


def test_memory_store_roundtrip():
    store = MemoryStore()
    assert store.get_item("missing") is None
    store.set_item("key", "value")
    assert store.get_item("key") == "value"
    store.remove_item("key")
    assert store.get_item("key") is None


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "store.json"
    JsonFileStore(path).set_item("admin_activity_log", "[]")

    reopened = JsonFileStore(path)
    assert reopened.get_item("admin_activity_log") == "[]"
    reopened.remove_item("admin_activity_log")
    assert JsonFileStore(path).get_item("admin_activity_log") is None


def test_json_file_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonFileStore(path)
    assert store.get_item("anything") is None
    store.set_item("anything", "ok")
    assert store.get_item("anything") == "ok"
