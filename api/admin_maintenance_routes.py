import os
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from core.deps import get_shift_store, require_manager_role
from core.errors import ClockServiceError
from core.http_errors import http_error_for
from models.user import RequestContext
from services.shift_guard import DEFAULT_THRESHOLD_HOURS, run_shift_guard_once_async
from services.shift_store import ShiftStore


router = APIRouter()


@router.post("/run-shift-guard")
async def run_shift_guard_single_execution(
    store: Annotated[ShiftStore, Depends(get_shift_store)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
    threshold_hours: Annotated[Optional[float], Query(gt=0)] = None,
):
    """
    One-shot execution of the Shift Guard for the caller's organization. Manager-only.

    Query params:
    - threshold_hours: optional override; defaults to env SHIFT_GUARD_THRESHOLD_HOURS or 16.0
    """
    default_threshold = float(
        os.getenv("SHIFT_GUARD_THRESHOLD_HOURS", str(DEFAULT_THRESHOLD_HOURS))
    )
    effective_threshold = float(threshold_hours) if threshold_hours is not None else default_threshold

    try:
        cancelled = await run_shift_guard_once_async(
            store, effective_threshold, organization_id=manager.organization_id
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e

    return {
        "status": "ok",
        "threshold_hours": effective_threshold,
        "cancelled_shifts": cancelled,
    }
