from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field as PydanticField

from core.deps import get_clock_engine, get_current_user, get_shift_store
from core.errors import ClockServiceError
from core.http_errors import http_error_for
from models.coordinate import Coordinate
from models.shift import ShiftRead
from models.user import RequestContext
from services.clock_engine import ClockEngine, ClockInResult, ClockOutResult
from services.shift_store import ShiftStore

# --- Pydantic Models for Request Payloads ---


# Defines the Structure of Data for a Clock In / Clock Out Call
class PunchRequest(BaseModel):
    latitude: float = PydanticField(ge=-90, le=90)
    longitude: float = PydanticField(ge=-180, le=180)
    # Length is enforced by the clock engine so over-long notes are rejected, not cut
    note: Optional[str] = None

    @property
    def location(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


# Defines API Endpoints
router = APIRouter()


# Clock In Endpoint
@router.post("/clock-in", response_model=ClockInResult)
def clock_in(
    data: PunchRequest,
    engine: Annotated[ClockEngine, Depends(get_clock_engine)],
    user: Annotated[RequestContext, Depends(get_current_user)],
):
    try:
        return engine.clock_in(
            worker_id=user.worker_id,
            organization_id=user.organization_id,
            location=data.location,
            note=data.note,
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e


# Clock Out Endpoint
@router.post("/clock-out", response_model=ClockOutResult)
def clock_out(
    data: PunchRequest,
    engine: Annotated[ClockEngine, Depends(get_clock_engine)],
    user: Annotated[RequestContext, Depends(get_current_user)],
):
    try:
        return engine.clock_out(
            worker_id=user.worker_id,
            location=data.location,
            note=data.note,
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e


# Get the Caller's Open Shift, If Any
@router.get("/active-shift", response_model=Optional[ShiftRead])
def get_active_shift(
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    user: Annotated[RequestContext, Depends(get_current_user)],
):
    try:
        shift = store.find_active_shift(user.worker_id)
    except ClockServiceError as e:
        raise http_error_for(e) from e
    return ShiftRead.from_shift(shift) if shift else None


# Get the Caller's Shifts, Newest First
@router.get("/shifts", response_model=List[ShiftRead])
def get_my_shifts(
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    user: Annotated[RequestContext, Depends(get_current_user)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    try:
        shifts = store.list_shifts_for_worker(user.worker_id, limit=limit, offset=offset)
    except ClockServiceError as e:
        raise http_error_for(e) from e
    return [ShiftRead.from_shift(shift) for shift in shifts]
