"""Time entry endpoints - timers and manual entries."""
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from timeledger.database import get_task_directory, get_time_entry_store
from timeledger.models.response import ApiResponse, PaginatedResponse
from timeledger.models.time_entry import (
    Pagination,
    TaskTimeStats,
    TimeEntry,
    TimeEntryCreate,
    TimeEntryFilters,
    TimeEntryUpdate,
    TimerStart,
)
from timeledger.routers.auth import get_current_user_id
from timeledger.services.entry_service import EntryService
from timeledger.services.timer_service import TimerService


router = APIRouter(prefix="/time-entries", tags=["time-entries"])


@router.get("", response_model=PaginatedResponse[TimeEntry])
async def list_entries(
    task_id: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    List time entries for the authenticated user.

    - Requires authentication
    - Optional filters: task_id, project_id, date_from, date_to (on start_time)
    - Results sorted by start_time descending (most recent first)
    """
    service = EntryService(store, tasks)
    pagination = Pagination(page=page, limit=limit)
    entries, total = await service.list_entries(
        user_id=user_id,
        filters=TimeEntryFilters(
            task_id=task_id,
            project_id=project_id,
            date_from=date_from,
            date_to=date_to,
        ),
        pagination=pagination,
    )
    return PaginatedResponse[TimeEntry](
        data=entries,
        page=pagination.page,
        limit=pagination.limit,
        total=total,
        total_pages=math.ceil(total / pagination.limit),
    )


@router.post("", response_model=ApiResponse[TimeEntry], status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_create: TimeEntryCreate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Create a manual time entry.

    - Requires authentication
    - Task must exist and belong to the user
    - Duration is recomputed whenever start_time and end_time are both present
    """
    service = EntryService(store, tasks)
    entry = await service.create_entry(user_id=user_id, entry_create=entry_create)
    return ApiResponse[TimeEntry](data=entry, message="Time entry created")


@router.get("/active", response_model=ApiResponse[TimeEntry])
async def get_active_timer(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Get the currently running timer, if any.

    - Requires authentication
    - ``data`` is null when no timer is running
    """
    service = TimerService(store, tasks)
    entry = await service.get_active_timer(user_id=user_id)
    return ApiResponse[TimeEntry](data=entry)


@router.post(
    "/tasks/{task_id}/start",
    response_model=ApiResponse[TimeEntry],
    status_code=status.HTTP_201_CREATED,
)
async def start_timer(
    task_id: str,
    timer_start: Optional[TimerStart] = None,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Start a timer for a task.

    - Requires authentication
    - Any running timer of the user is stopped first
    - Task must exist and belong to the user
    """
    service = TimerService(store, tasks)
    entry = await service.start_timer(
        user_id=user_id,
        task_id=task_id,
        description=timer_start.description if timer_start else "",
    )
    return ApiResponse[TimeEntry](data=entry, message="Timer started")


@router.get("/tasks/{task_id}/stats", response_model=ApiResponse[TaskTimeStats])
async def get_task_stats(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Tracked time for one task.

    - Requires authentication
    - Includes live time of a running timer
    """
    service = EntryService(store, tasks)
    stats = await service.task_stats(user_id=user_id, task_id=task_id)
    return ApiResponse[TaskTimeStats](data=stats)


@router.put("/{entry_id}/stop", response_model=ApiResponse[TimeEntry])
async def stop_timer(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Stop a running timer.

    - Requires authentication
    - Entry must be running and belong to the user
    """
    service = TimerService(store, tasks)
    entry = await service.stop_timer(user_id=user_id, entry_id=entry_id)
    return ApiResponse[TimeEntry](data=entry, message="Timer stopped")


@router.put("/{entry_id}", response_model=ApiResponse[TimeEntry])
async def update_entry(
    entry_id: str,
    entry_update: TimeEntryUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Update a time entry.

    - Requires authentication
    - User must own the entry
    """
    service = EntryService(store, tasks)
    entry = await service.update_entry(
        user_id=user_id,
        entry_id=entry_id,
        entry_update=entry_update,
    )
    return ApiResponse[TimeEntry](data=entry, message="Time entry updated")


@router.delete("/{entry_id}", response_model=ApiResponse[None])
async def delete_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_time_entry_store),
    tasks=Depends(get_task_directory),
):
    """
    Delete a time entry.

    - Requires authentication
    - User must own the entry
    - Hard delete (permanent)
    """
    service = EntryService(store, tasks)
    await service.delete_entry(user_id=user_id, entry_id=entry_id)
    return ApiResponse[None](message="Time entry deleted")
