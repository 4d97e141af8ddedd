from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_serializer

from core.deps import get_shift_store, require_manager_role
from core.errors import ClockServiceError
from core.http_errors import http_error_for
from models.shift import ShiftRead
from models.user import RequestContext
from services.shift_store import ShiftStore
from utils.datetime_helpers import ensure_utc, format_utc_datetime

router = APIRouter()


# --- Pydantic Models for Responses ---


class ActiveStaffEntry(BaseModel):
    worker_id: str
    shift_id: str
    clock_in_time: datetime
    clock_in_note: Optional[str] = None

    @field_serializer("clock_in_time")
    def serialize_clock_in_time(self, dt: datetime) -> str:
        """Ensure timestamp is formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()


class ShiftPage(BaseModel):
    shifts: List[ShiftRead]
    total_count: int
    limit: int
    offset: int
    has_next_page: bool
    has_previous_page: bool


# --- API Endpoints ---


# Live Staff Status: Everyone Currently On Shift
@router.get("/active-shifts", response_model=List[ActiveStaffEntry])
def get_active_shifts(
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
):
    try:
        shifts = store.list_active_shifts(manager.organization_id)
    except ClockServiceError as e:
        raise http_error_for(e) from e

    return [
        ActiveStaffEntry(
            worker_id=shift.worker_id,
            shift_id=shift.id,
            clock_in_time=shift.clock_in_time,
            clock_in_note=shift.clock_in_note,
        )
        for shift in shifts
    ]


# All Shifts for the Organization, Paged, Optionally Limited to a Clock-In Range
@router.get("/shifts", response_model=ShiftPage)
def get_all_shifts(
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    start = ensure_utc(start) if start else None
    end = ensure_utc(end) if end else None
    if start and end and end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end must not be before start.",
        )

    try:
        shifts, total = store.list_shifts(
            manager.organization_id, start=start, end=end, limit=limit, offset=offset
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e

    return ShiftPage(
        shifts=[ShiftRead.from_shift(shift) for shift in shifts],
        total_count=total,
        limit=limit,
        offset=offset,
        has_next_page=offset + limit < total,
        has_previous_page=offset > 0,
    )


# One Worker's Shift History (Same Organization Only)
@router.get("/workers/{worker_id}/shifts", response_model=List[ShiftRead])
def get_worker_shifts(
    worker_id: str,
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    try:
        # Managers only see shifts recorded under their own organization
        shifts = store.list_shifts_for_worker(
            worker_id,
            limit=limit,
            offset=offset,
            organization_id=manager.organization_id,
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e

    return [ShiftRead.from_shift(shift) for shift in shifts]
