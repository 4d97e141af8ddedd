import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from core.errors import ActiveShiftConflict, ValidationError
from models.coordinate import Coordinate
from models.shift import ClockEvent, ShiftRead, format_duration
from services.perimeter_registry import PerimeterRegistry
from services.shift_store import ShiftStore
from utils.datetime_helpers import ensure_utc
from utils.geofence import distance_meters, is_within_perimeter, validate_coordinate

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 500


class ClockOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    ALREADY_CLOCKED_IN = "ALREADY_CLOCKED_IN"
    NO_PERIMETER_CONFIGURED = "NO_PERIMETER_CONFIGURED"
    OUTSIDE_PERIMETER = "OUTSIDE_PERIMETER"
    NO_ACTIVE_SHIFT = "NO_ACTIVE_SHIFT"


class ClockInResult(BaseModel):
    outcome: ClockOutcome
    shift: Optional[ShiftRead] = None
    distance_meters: Optional[float] = None
    # Set only when a perimeter was actually evaluated
    within_perimeter: Optional[bool] = None
    message: str

    @property
    def success(self) -> bool:
        return self.outcome == ClockOutcome.SUCCESS


class ClockOutResult(BaseModel):
    outcome: ClockOutcome
    shift: Optional[ShiftRead] = None
    duration_label: Optional[str] = None
    message: str

    @property
    def success(self) -> bool:
        return self.outcome == ClockOutcome.SUCCESS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_note(note: Optional[str]) -> None:
    if note is not None and len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(
            f"Note is {len(note)} characters; the limit is {MAX_NOTE_LENGTH}."
        )


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded down."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return max(0, int(seconds // 60))


class ClockEngine:
    """
    Per-worker OFF_SHIFT / ON_SHIFT state machine.

    Every transition runs its read-decide-write inside
    `ShiftStore.worker_transaction`, so concurrent requests for one worker
    are serialized and successful clock-ins and clock-outs strictly alternate.
    Business rejections come back as result values; only validation,
    storage and consistency failures raise.
    """

    def __init__(
        self,
        store: ShiftStore,
        registry: PerimeterRegistry,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.registry = registry
        self._now = now

    def clock_in(
        self,
        worker_id: str,
        organization_id: str,
        location: Coordinate,
        note: Optional[str] = None,
    ) -> ClockInResult:
        validate_coordinate(location)
        validate_note(note)

        try:
            with self.store.worker_transaction(worker_id) as tx:
                existing = tx.find_active_shift()
                if existing is not None:
                    logger.info("Clock-in rejected for %s: already on shift %s", worker_id, existing.id)
                    return ClockInResult(
                        outcome=ClockOutcome.ALREADY_CLOCKED_IN,
                        shift=ShiftRead.from_shift(existing),
                        message="You already have an active shift. Please clock out first.",
                    )

                perimeter = self.registry.get_perimeter(organization_id)
                if perimeter is None:
                    logger.info("Clock-in rejected for %s: no perimeter for %s", worker_id, organization_id)
                    return ClockInResult(
                        outcome=ClockOutcome.NO_PERIMETER_CONFIGURED,
                        message=(
                            "No location perimeter is set for your organization. "
                            "Please contact your manager."
                        ),
                    )

                distance = distance_meters(location, perimeter.center)
                if not is_within_perimeter(location, perimeter):
                    logger.info(
                        "Clock-in rejected for %s: %.1fm from %s (radius %.1fm)",
                        worker_id,
                        distance,
                        perimeter.display_name,
                        perimeter.radius_meters,
                    )
                    return ClockInResult(
                        outcome=ClockOutcome.OUTSIDE_PERIMETER,
                        distance_meters=distance,
                        within_perimeter=False,
                        message=(
                            "You are outside the designated perimeter and cannot clock in. "
                            f"You are {distance:.0f}m from {perimeter.display_name} "
                            f"(allowed radius {perimeter.radius_meters:.0f}m)."
                        ),
                    )

                shift = tx.create_active_shift(
                    organization_id,
                    ClockEvent(time=self._now(), location=location, note=note),
                )
        except ActiveShiftConflict:
            # Another process inserted an ACTIVE shift between our read and write
            logger.info("Clock-in for %s lost a race to a concurrent clock-in", worker_id)
            return ClockInResult(
                outcome=ClockOutcome.ALREADY_CLOCKED_IN,
                message="You already have an active shift. Please clock out first.",
            )

        logger.info("Worker %s clocked in (shift %s)", worker_id, shift.id)
        return ClockInResult(
            outcome=ClockOutcome.SUCCESS,
            shift=ShiftRead.from_shift(shift),
            distance_meters=distance,
            within_perimeter=True,
            message="Successfully clocked in!",
        )

    def clock_out(
        self,
        worker_id: str,
        location: Coordinate,
        note: Optional[str] = None,
    ) -> ClockOutResult:
        # No perimeter check here: a worker must always be able to end a shift
        validate_coordinate(location)
        validate_note(note)

        try:
            with self.store.worker_transaction(worker_id) as tx:
                active = tx.find_active_shift()
                if active is None:
                    logger.info("Clock-out rejected for %s: no active shift", worker_id)
                    return self._no_active_shift()

                clock_in_time = ensure_utc(active.clock_in_time)
                # Keep clock_out >= clock_in even if the wall clock stepped back
                clock_out_time = max(ensure_utc(self._now()), clock_in_time)
                duration_minutes = elapsed_minutes(clock_in_time, clock_out_time)

                shift = tx.complete_shift(
                    active.id,
                    ClockEvent(time=clock_out_time, location=location, note=note),
                    duration_minutes,
                )
        except ActiveShiftConflict:
            logger.info("Clock-out for %s lost a race; shift already closed", worker_id)
            return self._no_active_shift()

        duration_label = format_duration(duration_minutes)
        logger.info("Worker %s clocked out (shift %s, %s)", worker_id, shift.id, duration_label)
        return ClockOutResult(
            outcome=ClockOutcome.SUCCESS,
            shift=ShiftRead.from_shift(shift),
            duration_label=duration_label,
            message=f"Successfully clocked out! Total time: {duration_label}",
        )

    @staticmethod
    def _no_active_shift() -> ClockOutResult:
        return ClockOutResult(
            outcome=ClockOutcome.NO_ACTIVE_SHIFT,
            message="No active shift found. Please clock in first.",
        )
