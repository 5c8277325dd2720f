"""
Process-wide access to the active data service.

The first get_instance() call builds the adapter selected by
DATA_SERVICE_TYPE; later calls return the same object. set_instance() replaces
it (tests, alternate backends).
"""
import threading
from typing import Optional

from core.logger import logger
from services.data_service import DataService
import config

_ALIASES = {
    "database": "database",
    "supabase": "database",
    "rest": "rest",
    "mssql": "rest",
}


def resolve_service_type(service_type: Optional[str]) -> str:
    """Map a configured service type (including legacy names) to an adapter name."""
    key = (service_type or "").strip().lower()
    if key not in _ALIASES:
        logger.warning(f"Unknown DATA_SERVICE_TYPE '{service_type}', using 'database'")
        return "database"
    return _ALIASES[key]


def create_data_service(service_type: Optional[str] = None) -> DataService:
    """Build a new adapter for the given (or configured) service type."""
    resolved = resolve_service_type(service_type if service_type is not None else config.DATA_SERVICE_TYPE)

    if resolved == "rest":
        from services.rest_data_service import RestDataService
        return RestDataService(config.API_BASE_URL, config.API_TIMEOUT_SECONDS)

    from services.database_data_service import DatabaseDataService
    database = config.db
    if database is None:
        from database.connection import Database
        database = Database(config.DATABASE_URL, config.DB_POOL_SIZE, config.DB_MAX_OVERFLOW)
        config.db = database
    return DatabaseDataService(database, config.s3_client, config.SECRET_KEY)


class DataServiceFactory:
    """Thread-safe lazy singleton holder for the DataService."""

    _instance: Optional[DataService] = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> DataService:
        instance = cls._instance
        if instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = create_data_service()
                    logger.info(f"Data service initialized: {cls._instance.name}")
                instance = cls._instance
        return instance

    @classmethod
    def set_instance(cls, service: DataService) -> None:
        with cls._lock:
            cls._instance = service
        logger.info(f"Data service replaced: {service.name}")

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None
