import logging
import math
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlmodel import Session

from core.errors import TransientStoreError, ValidationError
from models.coordinate import Coordinate
from models.perimeter import Perimeter
from utils.geofence import validate_coordinate

logger = logging.getLogger(__name__)


class PerimeterRegistry:
    """Where each organization's workers are allowed to clock in."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_perimeter(self, organization_id: str) -> Optional[Perimeter]:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                return session.get(Perimeter, organization_id)
        except (OperationalError, DBAPIError) as e:
            logger.warning("Perimeter lookup failed for %s: %s", organization_id, e)
            raise TransientStoreError("Perimeter registry is unavailable.") from e

    def set_perimeter(
        self,
        organization_id: str,
        center: Coordinate,
        radius_meters: float,
        display_name: str,
        address: Optional[str] = None,
        updated_by: Optional[str] = None,
    ) -> Perimeter:
        """
        Create or replace the organization's perimeter.

        The whole record is overwritten in one transaction, so a concurrent
        reader sees either the previous perimeter or this one.
        """
        validate_coordinate(center, field="center")
        if not math.isfinite(radius_meters) or radius_meters <= 0:
            raise ValidationError("radius_meters must be a positive number.")
        if not display_name or not display_name.strip():
            raise ValidationError("display_name is required.")

        try:
            with Session(self.engine, expire_on_commit=False) as session, session.begin():
                perimeter = session.get(Perimeter, organization_id)
                if perimeter is None:
                    perimeter = Perimeter(
                        organization_id=organization_id,
                        display_name=display_name,
                        center_lat=center.latitude,
                        center_lng=center.longitude,
                        radius_meters=radius_meters,
                    )
                perimeter.display_name = display_name
                perimeter.address = address
                perimeter.center_lat = center.latitude
                perimeter.center_lng = center.longitude
                perimeter.radius_meters = radius_meters
                perimeter.updated_at = datetime.now(timezone.utc)
                perimeter.updated_by = updated_by
                session.add(perimeter)
        except (OperationalError, DBAPIError) as e:
            logger.warning("Perimeter update failed for %s: %s", organization_id, e)
            raise TransientStoreError("Perimeter registry is unavailable.") from e

        logger.info(
            "Perimeter for %s set to (%s, %s) r=%sm by %s",
            organization_id,
            center.latitude,
            center.longitude,
            radius_meters,
            updated_by or "unknown",
        )
        return perimeter
