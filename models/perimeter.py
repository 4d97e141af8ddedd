from datetime import datetime, timezone
from typing import Optional

from pydantic import field_serializer
from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from models.coordinate import Coordinate
from utils.datetime_helpers import format_utc_datetime

# Defines the Circular Geofence an Organization's Workers Must Be Inside to Clock In


# One Row Per Organization; Updating Replaces the Row, Never Appends
class Perimeter(SQLModel, table=True):
    __tablename__ = "perimeter"

    organization_id: str = Field(primary_key=True, description="Owning organization")
    display_name: str = Field(..., description="Human-friendly site name")
    address: Optional[str] = Field(default=None, description="Street address of the site")
    center_lat: float = Field(..., description="Latitude of perimeter center")
    center_lng: float = Field(..., description="Longitude of perimeter center")
    radius_meters: float = Field(..., description="Allowed clock-in radius in meters")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_by: Optional[str] = Field(default=None)

    @property
    def center(self) -> Coordinate:
        return Coordinate(latitude=self.center_lat, longitude=self.center_lng)


class PerimeterRead(SQLModel):
    organization_id: str
    display_name: str
    address: Optional[str] = None
    center_lat: float
    center_lng: float
    radius_meters: float
    updated_at: datetime
    updated_by: Optional[str] = None

    @field_serializer("updated_at")
    def serialize_updated_at(self, dt: datetime) -> str:
        """Ensure timestamp is formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()
