"""
Admin activity history APIs.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timedelta
import csv
import io
import json

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from core.entities import AdminEntityType, AdminHistory, AdminLogEntry, User
from core.utils import to_naive_utc, utcnow
from routers.common import raise_for_error
from services.admin_logger import AdminLogger
from services.data_service import DataService
import config


router = APIRouter(prefix="/api/admin", tags=["admin history"])

HISTORY_RANGES = ("all", "today", "week", "month")


class ExportRecord(BaseModel):
    """An export performed by the dashboard, recorded for the audit trail."""
    entity_type: AdminEntityType = AdminEntityType.SYSTEM
    details: str


def range_start(time_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest created_at included by a history range; None means no lower bound."""
    now = now or utcnow()
    if time_range == "today":
        return datetime(now.year, now.month, now.day)
    if time_range == "week":
        return now - timedelta(days=7)
    if time_range == "month":
        return datetime(now.year, now.month, 1)
    return None


def filter_history(history: List[AdminHistory], time_range: str, now: Optional[datetime] = None) -> List[AdminHistory]:
    start = range_start(time_range, now)
    if start is None:
        return history
    return [item for item in history if item.created_at and to_naive_utc(item.created_at) >= start]


@router.get("/history", response_model=List[AdminHistory])
def list_history(
    time_range: str = Query("all", alias="range", pattern="^(all|today|week|month)$"),
    limit: int = Query(config.ADMIN_HISTORY_LIMIT, ge=1, le=1000),
    current_admin: User = Depends(get_current_admin),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """
    Recent admin activity, newest first.
    Falls back to locally recorded entries when the remote log cannot be read.
    """
    return filter_history(admin_logger.get_history(limit), time_range)


@router.post("/history", response_model=AdminHistory, status_code=status.HTTP_201_CREATED)
def append_history(
    entry: AdminLogEntry,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    """Append a pre-built entry to the activity log."""
    result = data_service.log_admin_action(entry)
    raise_for_error(result.error)
    return result.data


@router.get("/history/export")
def export_history(
    time_range: str = Query("all", alias="range", pattern="^(all|today|week|month)$"),
    format: str = Query("csv", pattern="^(csv|json)$"),
    current_admin: User = Depends(get_current_admin),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Download the activity history as CSV or JSON."""
    history = filter_history(admin_logger.get_history(config.ADMIN_HISTORY_LIMIT), time_range)
    timestamp = utcnow().strftime('%Y%m%d_%H%M%S')

    if format == "csv":
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["id", "created_at", "action_type", "entity_type", "entity_id", "admin_name", "admin_email", "details"])
        for item in history:
            writer.writerow([
                item.id,
                item.created_at.isoformat() if item.created_at else "",
                item.action_type,
                item.entity_type,
                item.entity_id,
                item.admin_name,
                item.admin_email,
                item.details,
            ])
        content = output.getvalue()
        output.close()
        media_type = "text/csv"
    else:
        content = json.dumps([item.model_dump(mode="json") for item in history], indent=2)
        media_type = "application/json"

    admin_logger.log_export(
        AdminEntityType.SYSTEM,
        f"admin history ({len(history)} records, range: {time_range})",
        {"format": format, "record_count": len(history)},
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename=admin_history_{timestamp}.{format}"},
    )


@router.post("/export")
def record_export(
    record: ExportRecord,
    current_admin: User = Depends(get_current_admin),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """Record an export the dashboard performed client-side."""
    admin_logger.log_export(record.entity_type, record.details)
    return {"message": "Export recorded"}
