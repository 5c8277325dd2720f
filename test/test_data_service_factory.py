import threading

import config
from services.data_service_factory import DataServiceFactory, create_data_service, resolve_service_type
from services.database_data_service import DatabaseDataService
from services.rest_data_service import RestDataService


def test_resolve_service_type_aliases():
    assert resolve_service_type("supabase") == "database"
    assert resolve_service_type(" MSSQL ") == "rest"
    assert resolve_service_type("rest") == "rest"
    assert resolve_service_type("oracle") == "database"
    assert resolve_service_type(None) == "database"


def test_create_rest_service():
    assert isinstance(create_data_service("rest"), RestDataService)


def test_create_database_service_uses_configured_db(database, monkeypatch):
    monkeypatch.setattr(config, "db", database)
    service = create_data_service("database")
    assert isinstance(service, DatabaseDataService)
    assert service.db is database


def test_get_instance_is_a_singleton(monkeypatch):
    monkeypatch.setattr(config, "DATA_SERVICE_TYPE", "rest")
    results = []

    def worker():
        results.append(DataServiceFactory.get_instance())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(s) for s in results}) == 1
    assert DataServiceFactory.get_instance() is results[0]


def test_set_instance_overrides_and_reset_clears(service, monkeypatch):
    DataServiceFactory.set_instance(service)
    assert DataServiceFactory.get_instance() is service

    DataServiceFactory.reset()
    monkeypatch.setattr(config, "DATA_SERVICE_TYPE", "rest")
    assert isinstance(DataServiceFactory.get_instance(), RestDataService)
