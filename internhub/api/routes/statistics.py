"""
Statistics API Endpoints

GET /api/v1/statistics/overview - Teacher dashboard overview
GET /api/v1/statistics/enterprise/{enterprise_id} - Capacity and intern distribution of one enterprise
GET /api/v1/statistics/timeseries - Activity per day, week, month or year
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from internhub.api.auth import Caller, require_role
from internhub.models.user import Role
from internhub.services.statistics_service import get_statistics_service

router = APIRouter(prefix="/statistics", tags=["statistics"])


class OverviewResponse(BaseModel):
    """Response for GET /statistics/overview"""
    data: Dict[str, Any]
    metadata: Dict[str, Any]


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    start_date: Optional[datetime] = Query(None, description="Window start (requires end_date)"),
    end_date: Optional[datetime] = Query(None, description="Window end (requires start_date)"),
    period: Optional[str] = Query(None, description="month, semester or year"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Application, internship and position counts with per-enterprise details.

    Raises:
        400: Unknown period or inverted window
        403: Caller is not a teacher
    """
    overview = await get_statistics_service().overview(start_date=start_date, end_date=end_date, period=period)
    return OverviewResponse(
        data=overview,
        metadata={
            "timestamp": datetime.utcnow().isoformat(),
            "period": period,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        },
    )


class StatisticsResponse(BaseModel):
    """Response for the enterprise and time series reports"""
    data: Dict[str, Any]


@router.get("/enterprise/{enterprise_id}", response_model=StatisticsResponse)
async def get_enterprise_statistics(
    enterprise_id: int = Path(..., description="Enterprise id"),
    start_date: Optional[datetime] = Query(None, description="Window start (requires end_date)"),
    end_date: Optional[datetime] = Query(None, description="Window end (requires start_date)"),
    caller: Caller = Depends(require_role(Role.TEACHER, Role.ENTERPRISE)),
):
    """
    Position counts by status, slot totals and interns per position.

    Raises:
        403: Enterprise caller asking about another enterprise
        404: Enterprise not found
    """
    stats = await get_statistics_service().enterprise_statistics(
        enterprise_id, caller.user_id, caller.role, start_date=start_date, end_date=end_date
    )
    return StatisticsResponse(data=stats)


@router.get("/timeseries", response_model=StatisticsResponse)
async def get_timeseries(
    start_date: Optional[datetime] = Query(None, description="Window start"),
    end_date: Optional[datetime] = Query(None, description="Window end"),
    group_by: str = Query("month", description="day, week, month or year"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Application and internship counts per period.

    Raises:
        400: Missing or inverted window, unknown group_by
        403: Caller is not a teacher
    """
    series = await get_statistics_service().timeseries(start_date, end_date, group_by=group_by)
    return StatisticsResponse(data=series)
