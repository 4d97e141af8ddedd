from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from core.deps import get_current_user, get_perimeter_registry
from core.errors import ClockServiceError
from core.http_errors import http_error_for
from models.perimeter import PerimeterRead
from models.user import RequestContext
from services.perimeter_registry import PerimeterRegistry

router = APIRouter()

# --- API Endpoints ---


@router.get("", response_model=PerimeterRead)
def get_my_perimeter(
    registry: Annotated[PerimeterRegistry, Depends(get_perimeter_registry)],
    user: Annotated[RequestContext, Depends(get_current_user)],
):
    """
    Retrieve the geofence (center and radius) for the caller's organization,
    so the client can show how far the worker is from the clock-in zone.
    """
    try:
        perimeter = registry.get_perimeter(user.organization_id)
    except ClockServiceError as e:
        raise http_error_for(e) from e

    if not perimeter:
        raise HTTPException(
            status_code=404,
            detail="No location perimeter is set for your organization.",
        )

    return perimeter
