"""Analytics endpoints - dashboard, charts, reports and exports."""
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from timeledger.config import settings
from timeledger.database import get_task_directory, get_time_entry_store
from timeledger.models.analytics import (
    AnalyticsWindow,
    DashboardSummary,
    GroupBy,
    ProjectReport,
    TimeSeries,
)
from timeledger.models.response import ApiResponse
from timeledger.routers.auth import get_current_user_id
from timeledger.services.analytics_service import AnalyticsService
from timeledger.services.report_service import ReportService
from timeledger.utils.export import pdf_locale, to_csv, to_pdf
from timeledger.utils.timeutil import utcnow


router = APIRouter(prefix="/analytics", tags=["analytics"])


class ExportFormat(str, Enum):
    """Export encodings."""

    CSV = "csv"
    PDF = "pdf"


def _window(start: Optional[datetime], end: Optional[datetime]) -> AnalyticsWindow:
    return AnalyticsWindow.resolve(
        utcnow(), start, end, default_days=settings.default_window_days,
    )


@router.get("/dashboard", response_model=ApiResponse[DashboardSummary])
async def get_dashboard(
    period: int = Query(30, ge=1, le=366, description="Window length in days"),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Dashboard metrics for the authenticated user.

    - Requires authentication
    - Total time includes the live time of a running timer
    """
    service = AnalyticsService(store, tasks, locale=settings.report_locale)
    summary = await service.dashboard_summary(user_id=user_id, period_days=period)
    return ApiResponse[DashboardSummary](data=summary)


@router.get("/time-chart", response_model=ApiResponse[TimeSeries])
async def get_time_chart(
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    project_id: Optional[str] = Query(None),
    group_by: GroupBy = Query(GroupBy.DAY),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Tracked time bucketed by day, week, month or project.

    - Requires authentication
    - Window defaults to the last 30 days
    """
    service = AnalyticsService(store, tasks, locale=settings.report_locale)
    series = await service.time_series(
        user_id=user_id,
        window=_window(start, end),
        project_id=project_id,
        group_by=group_by,
    )
    return ApiResponse[TimeSeries](data=series)


@router.get("/projects", response_model=ApiResponse[ProjectReport])
async def get_project_report(
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Per-project task counts and tracked time.

    - Requires authentication
    - Archived projects are excluded
    """
    service = AnalyticsService(store, tasks, locale=settings.report_locale)
    report = await service.project_report(user_id=user_id, window=_window(start, end))
    return ApiResponse[ProjectReport](data=report)


@router.get("/export/{export_format}")
async def export_report(
    export_format: ExportFormat,
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
    project_id: Optional[str] = Query(None),
    group_by: Optional[GroupBy] = Query(None),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Download a report.

    - Requires authentication
    - CSV: one row per task, or one row per bucket when group_by is given
    - PDF: summary plus one row per time entry
    """
    locale = settings.report_locale
    if export_format == ExportFormat.PDF:
        locale = pdf_locale(locale)
    service = ReportService(store, tasks, locale=locale)
    window = _window(start, end)
    period = f"{window.start_date.isoformat()}-{window.end_date.isoformat()}"

    if export_format == ExportFormat.PDF:
        table = await service.time_entry_table(user_id, window, project_id)
        return Response(
            content=to_pdf(table),
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename=time-report-{period}.pdf"},
        )

    if group_by is not None:
        table = await service.time_series_table(user_id, window, project_id, group_by)
    else:
        table = await service.task_table(user_id, window, project_id)
    return Response(
        content=to_csv(table),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=tasks-report-{period}.csv"},
    )
