"""
Admin activity logger.

Best-effort audit trail of administrative mutations. Each entry is written to
the remote activity log through the data service when that store is known to
be reachable; otherwise (or when the write fails) it is prepended to a capped
list in the local fallback store. Nothing here raises into the caller.
"""
import contextvars
import json
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from core.entities import AdminActionType, AdminEntityType, AdminHistory, AdminLogEntry
from core.logger import get_logger
from core.utils import utcnow
from services.activity_descriptions import create_concise_description
from services.data_service import DataService
from storage.local_store import LocalStore
import config

LOCAL_LOG_KEY = "admin_activity_log"

logger = get_logger("admin_log")


def _coerce_entity_id(entity_id: Any) -> int:
    try:
        parsed = int(entity_id)
    except (TypeError, ValueError):
        return 1
    return parsed if parsed > 0 else 1


def local_entry_to_history(record: Dict[str, Any]) -> AdminHistory:
    """Shape a locally stored entry like a remote history row."""
    action_type = str(record.get("action_type") or "")
    return AdminHistory(
        id=str(record.get("id") or record.get("log_id") or ""),
        log_id=record.get("log_id"),
        admin_id=record.get("admin_id"),
        action_type=action_type,
        action=action_type,
        entity_type=str(record.get("entity_type") or ""),
        entity_id=record.get("entity_id"),
        details=record.get("details"),
        admin_name=config.SYSTEM_ADMIN_NAME,
        admin_email=config.SYSTEM_ADMIN_EMAIL,
        created_at=record.get("created_at"),
    )


class AdminLogger:
    """Writes admin activity to the remote log, falling back to local storage."""

    def __init__(
        self,
        data_service: DataService,
        local_store: LocalStore,
        max_local_entries: int = 100,
        reprobe_interval: float = 0,
        history_fallback_limit: int = 50,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            data_service: Service used for remote writes, reads and the probe
            local_store: Fallback key/value store
            max_local_entries: Cap on the local fallback list
            reprobe_interval: Seconds after which an unavailable remote store is probed again (0 = never)
            history_fallback_limit: Local entries returned when the remote history read fails
            clock: Monotonic time source
        """
        self.data_service = data_service
        self.local_store = local_store
        self.max_local_entries = max_local_entries
        self.reprobe_interval = reprobe_interval
        self.history_fallback_limit = history_fallback_limit
        self._clock = clock

        # Per request context: concurrent requests each see their own admin
        self._admin_id = contextvars.ContextVar(f"admin_logger_admin_id_{id(self)}", default=1)
        self.database_available = False
        self._last_probe: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def current_admin_id(self) -> int:
        return self._admin_id.get()

    def set_current_admin_id(self, admin_id: Any) -> None:
        """Attribute subsequent entries in the current context (request or thread) to this admin."""
        self._admin_id.set(_coerce_entity_id(admin_id))
        logger.debug(f"Admin logger: current admin id set to {self.current_admin_id}")

    # ------------------------------------------------------------------
    # Core write path
    # ------------------------------------------------------------------
    def log_action(
        self,
        action_type: Any,
        entity_type: Any,
        details: str,
        entity_id: Any = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Record one admin action. Never raises."""
        try:
            entry = AdminLogEntry(
                admin_id=self.current_admin_id,
                action_type=AdminActionType(action_type),
                entity_type=AdminEntityType(entity_type),
                entity_id=_coerce_entity_id(entity_id),
                details=str(details),
                created_at=utcnow(),
                metadata=metadata if isinstance(metadata, dict) else {},
            )
        except Exception as e:
            logger.error(f"Admin logger: invalid entry ({action_type}/{entity_type}): {e}")
            self._log_locally({
                "admin_id": self.current_admin_id,
                "action_type": str(getattr(action_type, "value", action_type)),
                "entity_type": str(getattr(entity_type, "value", entity_type)),
                "entity_id": _coerce_entity_id(entity_id),
                "details": str(details),
                "metadata": metadata if isinstance(metadata, dict) else {},
                "created_at": utcnow().isoformat(),
            })
            return

        logger.info(f"Logging admin action: {entry.action_type.value} {entry.entity_type.value} - {entry.details[:50]}")

        if self._remote_available():
            try:
                result = self.data_service.log_admin_action(entry)
                if result.ok:
                    return
                logger.error(f"Admin logger: remote write failed: {result.error}")
            except Exception as e:
                logger.error(f"Admin logger: remote write error: {e}")
            with self._lock:
                self.database_available = False
        else:
            logger.debug("Admin logger: remote log unavailable, writing locally")

        self._log_locally(self._entry_record(entry))

    def _remote_available(self) -> bool:
        with self._lock:
            if self.database_available:
                return True
            due = self.reprobe_interval > 0 and (
                self._last_probe is None or self._clock() - self._last_probe >= self.reprobe_interval
            )
        if not due:
            return False
        return self.test_database_connection()

    @staticmethod
    def _entry_record(entry: AdminLogEntry) -> Dict[str, Any]:
        record = entry.model_dump()
        record["action_type"] = entry.action_type.value
        record["entity_type"] = entry.entity_type.value
        record["created_at"] = entry.created_at.isoformat()
        return record

    def _log_locally(self, record: Dict[str, Any]) -> None:
        log_id = time.time_ns()
        record = dict(record, log_id=log_id, id=f"local-{log_id}")
        try:
            with self._lock:
                entries = self._read_local()
                entries.insert(0, record)
                del entries[self.max_local_entries:]
                self.local_store.set_item(LOCAL_LOG_KEY, json.dumps(entries, default=str))
            logger.info("Admin logger: stored entry in local fallback")
        except Exception as e:
            logger.warning(f"Admin logger: failed to store entry locally: {e}")

    def _read_local(self) -> List[Dict[str, Any]]:
        raw = self.local_store.get_item(LOCAL_LOG_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except ValueError:
            logger.warning("Admin logger: local fallback list is corrupt, starting over")
            return []
        return entries if isinstance(entries, list) else []

    def get_local_entries(self) -> List[Dict[str, Any]]:
        """Locally stored entries, most recent first."""
        try:
            with self._lock:
                return self._read_local()
        except Exception as e:
            logger.warning(f"Admin logger: failed to read local fallback: {e}")
            return []

    # ------------------------------------------------------------------
    # Convenience wrappers
    # ------------------------------------------------------------------
    def _log_described(self, action: AdminActionType, entity_type: Any, entity_id: Any, details: str, metadata: Optional[Dict[str, Any]]) -> None:
        try:
            description = create_concise_description(action, entity_type, details, metadata)
        except Exception as e:
            logger.warning(f"Admin logger: description template failed, using raw details: {e}")
            description = details
        self.log_action(action, entity_type, description, entity_id, metadata)

    def log_create(self, entity_type: Any, entity_id: Any, details: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_described(AdminActionType.CREATE, entity_type, entity_id, details, metadata)

    def log_update(self, entity_type: Any, entity_id: Any, details: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_described(AdminActionType.UPDATE, entity_type, entity_id, details, metadata)

    def log_delete(self, entity_type: Any, entity_id: Any, details: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_described(AdminActionType.DELETE, entity_type, entity_id, details, metadata)

    def log_export(self, entity_type: Any, details: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        label = str(getattr(entity_type, "value", entity_type)).lower()
        self.log_action(AdminActionType.EXPORT, entity_type, f"Exported {label} data - {details}", 1, metadata)

    def log_login(self, details: str = "Admin logged in", metadata: Optional[Dict[str, Any]] = None) -> None:
        email = metadata.get("user_email") if isinstance(metadata, dict) else None
        text = f"Admin logged in: {email}" if email else "Admin logged in"
        self.log_action(AdminActionType.LOGIN, AdminEntityType.SYSTEM, text, 1, metadata)

    def log_logout(self, details: str = "Admin logged out", metadata: Optional[Dict[str, Any]] = None) -> None:
        email = metadata.get("user_email") if isinstance(metadata, dict) else None
        text = f"Admin logged out: {email}" if email else "Admin logged out"
        self.log_action(AdminActionType.LOGOUT, AdminEntityType.SYSTEM, text, 1, metadata)

    # ------------------------------------------------------------------
    # Probe and reads
    # ------------------------------------------------------------------
    def test_database_connection(self) -> bool:
        """Minimal remote read; marks the remote log available or not."""
        try:
            self.data_service.get_admin_history(limit=1)
            available = True
            logger.info("Admin logger: remote activity log reachable")
        except Exception as e:
            available = False
            logger.warning(f"Admin logger: remote activity log unreachable: {e}")
        with self._lock:
            self.database_available = available
            self._last_probe = self._clock()
        return available

    def get_history(self, limit: int = 100) -> List[AdminHistory]:
        """Remote history, or the newest local entries when the remote read fails."""
        try:
            return self.data_service.get_admin_history(limit=limit)
        except Exception as e:
            logger.warning(f"Admin history read failed, serving local entries: {e}")
        history = []
        for record in self.get_local_entries()[:self.history_fallback_limit]:
            try:
                history.append(local_entry_to_history(record))
            except Exception as e:
                logger.warning(f"Skipping unreadable local history entry: {e}")
        return history
