import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer, field_validator
from sqlalchemy import Column, DateTime, text
from sqlmodel import Field, Index, SQLModel

from models.coordinate import Coordinate
from utils.datetime_helpers import ensure_utc, format_utc_datetime


# Members are stored by name, so keep name == value
class ShiftStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# One clock-in or clock-out event: when, where, and the worker's optional note
class ClockEvent(BaseModel):
    time: datetime
    location: Coordinate
    note: Optional[str] = None

    @field_validator("time")
    @classmethod
    def normalize_time(cls, dt: datetime) -> datetime:
        return ensure_utc(dt)

    @field_serializer("time")
    def serialize_time(self, dt: datetime) -> str:
        """Ensure timestamp is formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()


def format_duration(duration_minutes: int) -> str:
    hours, minutes = divmod(duration_minutes, 60)
    return f"{hours}h {minutes}m"


# Defines a Table "shift": one clock-in-to-clock-out work session per row
class Shift(SQLModel, table=True):
    __tablename__ = "shift"

    __table_args__ = (
        # At most one ACTIVE shift per worker, enforced by the database itself
        Index(
            "uq_shift_active_worker",
            "worker_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        # Worker history, newest first
        Index("ix_shift_worker_id_clock_in_time", "worker_id", "clock_in_time"),
        # Manager views filter by organization + time range
        Index("ix_shift_organization_id_clock_in_time", "organization_id", "clock_in_time"),
        Index("ix_shift_status", "status"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    worker_id: str
    organization_id: str
    status: ShiftStatus = Field(default=ShiftStatus.ACTIVE)

    clock_in_time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    clock_in_lat: float
    clock_in_lng: float
    clock_in_note: Optional[str] = Field(default=None)

    clock_out_time: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    clock_out_lat: Optional[float] = None
    clock_out_lng: Optional[float] = None
    clock_out_note: Optional[str] = Field(default=None)

    # Written once, when the shift becomes COMPLETED
    duration_minutes: Optional[int] = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    @property
    def clock_in(self) -> ClockEvent:
        return ClockEvent(
            time=self.clock_in_time,
            location=Coordinate(latitude=self.clock_in_lat, longitude=self.clock_in_lng),
            note=self.clock_in_note,
        )

    @property
    def clock_out(self) -> Optional[ClockEvent]:
        if self.clock_out_time is None:
            return None
        return ClockEvent(
            time=self.clock_out_time,
            location=Coordinate(latitude=self.clock_out_lat, longitude=self.clock_out_lng),
            note=self.clock_out_note,
        )


# Response shape for a shift, with the nested clock events and a duration label
class ShiftRead(BaseModel):
    id: str
    worker_id: str
    organization_id: str
    status: ShiftStatus
    clock_in: ClockEvent
    clock_out: Optional[ClockEvent] = None
    duration_minutes: Optional[int] = None
    duration: Optional[str] = None

    @classmethod
    def from_shift(cls, shift: Shift) -> "ShiftRead":
        return cls(
            id=shift.id,
            worker_id=shift.worker_id,
            organization_id=shift.organization_id,
            status=shift.status,
            clock_in=shift.clock_in,
            clock_out=shift.clock_out,
            duration_minutes=shift.duration_minutes,
            duration=(
                format_duration(shift.duration_minutes)
                if shift.duration_minutes is not None
                else None
            ),
        )
