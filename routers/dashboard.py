"""
Dashboard statistics APIs.
"""
from fastapi import APIRouter, Depends
from typing import List

from auth.dependencies import get_current_admin, get_data_service
from core.entities import DashboardStats, MonthlyEngagement, User
from routers.common import fetch
from services.data_service import DataService


router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    """Headline totals: users, active events, redemptions and engagement rate."""
    return fetch(data_service.get_dashboard_stats, "dashboard stats")


@router.get("/engagement", response_model=List[MonthlyEngagement])
def monthly_engagement(
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service)
):
    """Per-month activity for the last eight months, oldest first."""
    return fetch(data_service.get_monthly_engagement, "monthly engagement")
