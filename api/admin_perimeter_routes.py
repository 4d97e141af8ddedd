import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field as PydanticField

from core.deps import get_perimeter_registry, require_manager_role
from core.errors import ClockServiceError
from core.http_errors import http_error_for
from models.coordinate import Coordinate
from models.perimeter import PerimeterRead
from models.user import RequestContext
from services.perimeter_registry import PerimeterRegistry

logger = logging.getLogger(__name__)

# --- Router Definition ---
router = APIRouter()


# --- Pydantic Data Models ---


# Update model: the full perimeter; a PUT always replaces the whole record
class PerimeterUpdate(BaseModel):
    display_name: str = PydanticField(..., min_length=1)
    address: Optional[str] = None
    center_lat: float = PydanticField(ge=-90, le=90)
    center_lng: float = PydanticField(ge=-180, le=180)
    radius_meters: float = PydanticField(gt=0)  # Ensures radius is positive


# --- API Endpoints ---


# Endpoint: Get the Organization's Perimeter
@router.get("", response_model=PerimeterRead)
def read_perimeter(
    registry: Annotated[PerimeterRegistry, Depends(get_perimeter_registry)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
):
    try:
        perimeter = registry.get_perimeter(manager.organization_id)
    except ClockServiceError as e:
        raise http_error_for(e) from e

    # Check if the perimeter was found
    if not perimeter:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No perimeter configured for organization '{manager.organization_id}'.",
        )

    return perimeter


# Endpoint: Create or Replace the Organization's Perimeter
@router.put("", response_model=PerimeterRead)
def update_perimeter(
    perimeter_in: PerimeterUpdate,
    registry: Annotated[PerimeterRegistry, Depends(get_perimeter_registry)],
    manager: Annotated[RequestContext, Depends(require_manager_role)],
):
    try:
        perimeter = registry.set_perimeter(
            organization_id=manager.organization_id,
            center=Coordinate(
                latitude=perimeter_in.center_lat, longitude=perimeter_in.center_lng
            ),
            radius_meters=perimeter_in.radius_meters,
            display_name=perimeter_in.display_name,
            address=perimeter_in.address,
            updated_by=manager.worker_id,
        )
    except ClockServiceError as e:
        raise http_error_for(e) from e

    # Log admin action for auditing
    logger.info(f"Manager {manager.email or manager.worker_id} updated perimeter for {manager.organization_id}")

    return perimeter
