import random

import pytest
from sqlmodel import Session

from conftest import ORG_ID, SITE
from core.errors import ValidationError
from models.coordinate import Coordinate
from models.perimeter import Perimeter
from models.shift import ShiftStatus
from services.clock_engine import MAX_NOTE_LENGTH, ClockOutcome, elapsed_minutes

OUTSIDE = Coordinate(latitude=40.7700, longitude=-73.9900)


def test_clock_in_clock_again_then_out_from_outside(clock_engine, clock, site_perimeter):
    first = clock_engine.clock_in("worker-1", ORG_ID, SITE, note="Morning shift")
    assert first.outcome == ClockOutcome.SUCCESS
    assert first.shift.status == ShiftStatus.ACTIVE
    assert first.shift.clock_in.note == "Morning shift"
    assert first.shift.clock_out is None
    assert first.distance_meters == pytest.approx(0.0)
    assert first.within_perimeter is True

    again = clock_engine.clock_in("worker-1", ORG_ID, SITE)
    assert again.outcome == ClockOutcome.ALREADY_CLOCKED_IN
    assert again.within_perimeter is None
    assert again.shift.id == first.shift.id

    clock.advance(hours=8, minutes=5, seconds=30)
    out = clock_engine.clock_out("worker-1", OUTSIDE, note="Handover done")

    assert out.outcome == ClockOutcome.SUCCESS
    assert out.shift.id == first.shift.id
    assert out.shift.status == ShiftStatus.COMPLETED
    assert out.shift.clock_out.location == OUTSIDE
    assert out.shift.clock_out.note == "Handover done"
    assert out.shift.duration_minutes == 485
    assert out.duration_label == "8h 5m"
    assert out.shift.duration == "8h 5m"
    assert "8h 5m" in out.message


def test_clock_in_outside_perimeter_reports_distance(clock_engine, registry, store):
    registry.set_perimeter(
        organization_id="equator-clinic",
        center=Coordinate(latitude=0, longitude=0.01),
        radius_meters=50,
        display_name="Equator Clinic",
    )

    result = clock_engine.clock_in("worker-2", "equator-clinic", Coordinate(latitude=0, longitude=0))

    assert result.outcome == ClockOutcome.OUTSIDE_PERIMETER
    assert result.shift is None
    assert result.within_perimeter is False
    assert 1100 < result.distance_meters < 1120
    assert store.find_active_shift("worker-2") is None


def test_clock_out_without_active_shift(clock_engine, store):
    result = clock_engine.clock_out("worker-3", SITE)

    assert result.outcome == ClockOutcome.NO_ACTIVE_SHIFT
    assert result.shift is None
    assert result.duration_label is None
    assert store.list_shifts_for_worker("worker-3") == []


def test_no_perimeter_blocks_entry(clock_engine, store):
    for _ in range(3):
        result = clock_engine.clock_in("worker-4", "unconfigured-org", SITE)
        assert result.outcome == ClockOutcome.NO_PERIMETER_CONFIGURED
        assert result.within_perimeter is None
    assert store.find_active_shift("worker-4") is None


def test_no_perimeter_still_allows_exit(clock_engine, registry, db_engine, site_perimeter):
    assert clock_engine.clock_in("worker-5", ORG_ID, SITE).success

    # Perimeter removed while the worker is on shift
    with Session(db_engine) as session:
        session.delete(session.get(Perimeter, ORG_ID))
        session.commit()
    assert registry.get_perimeter(ORG_ID) is None

    result = clock_engine.clock_out("worker-5", OUTSIDE)
    assert result.outcome == ClockOutcome.SUCCESS
    assert result.shift.status == ShiftStatus.COMPLETED


def test_moved_perimeter_does_not_trap_worker(clock_engine, registry, site_perimeter):
    assert clock_engine.clock_in("worker-6", ORG_ID, SITE).success

    registry.set_perimeter(ORG_ID, Coordinate(latitude=51.5, longitude=-0.12), 10, "Moved")

    assert clock_engine.clock_out("worker-6", SITE).success
    assert clock_engine.clock_in("worker-6", ORG_ID, SITE).outcome == ClockOutcome.OUTSIDE_PERIMETER


@pytest.mark.parametrize(
    "seconds, minutes, label",
    [(0, 0, "0h 0m"), (59, 0, "0h 0m"), (90, 1, "0h 1m"), (119, 1, "0h 1m"),
     (120, 2, "0h 2m"), (3725, 62, "1h 2m")],
)
def test_duration_rounds_down(clock_engine, clock, site_perimeter, seconds, minutes, label):
    clock_engine.clock_in("worker-7", ORG_ID, SITE)
    clock.advance(seconds=seconds)

    result = clock_engine.clock_out("worker-7", SITE)

    assert result.shift.duration_minutes == minutes
    assert result.duration_label == label


def test_clock_running_backwards_keeps_clock_out_after_clock_in(clock_engine, clock, site_perimeter):
    started = clock_engine.clock_in("worker-8", ORG_ID, SITE)
    clock.advance(minutes=-10)

    result = clock_engine.clock_out("worker-8", SITE)

    assert result.shift.duration_minutes == 0
    assert result.shift.clock_out.time >= started.shift.clock_in.time


def test_elapsed_minutes_handles_naive_values(clock):
    start = clock()
    assert elapsed_minutes(start.replace(tzinfo=None), start.replace(second=59)) == 0


def test_over_long_note_is_rejected_not_truncated(clock_engine, store, site_perimeter):
    with pytest.raises(ValidationError):
        clock_engine.clock_in("worker-9", ORG_ID, SITE, note="x" * (MAX_NOTE_LENGTH + 1))
    assert store.find_active_shift("worker-9") is None

    ok = clock_engine.clock_in("worker-9", ORG_ID, SITE, note="x" * MAX_NOTE_LENGTH)
    assert len(ok.shift.clock_in.note) == MAX_NOTE_LENGTH

    with pytest.raises(ValidationError):
        clock_engine.clock_out("worker-9", SITE, note="y" * (MAX_NOTE_LENGTH + 1))
    assert store.find_active_shift("worker-9") is not None


def test_invalid_coordinates_are_rejected_before_state_changes(clock_engine, store, site_perimeter):
    with pytest.raises(ValidationError):
        clock_engine.clock_in("worker-10", ORG_ID, Coordinate(latitude=95, longitude=0))
    assert store.find_active_shift("worker-10") is None

    clock_engine.clock_in("worker-10", ORG_ID, SITE)
    with pytest.raises(ValidationError):
        clock_engine.clock_out("worker-10", Coordinate(latitude=0, longitude=-200))
    assert store.find_active_shift("worker-10") is not None


def test_successes_alternate_starting_with_clock_in(clock_engine, clock, site_perimeter):
    rng = random.Random(20250303)
    successes = []

    for _ in range(60):
        clock.advance(seconds=rng.randint(1, 600))
        if rng.random() < 0.5:
            result = clock_engine.clock_in("worker-11", ORG_ID, SITE)
            if result.success:
                successes.append("in")
        else:
            result = clock_engine.clock_out("worker-11", SITE)
            if result.success:
                successes.append("out")

    assert successes, "random walk produced no transitions"
    assert successes[0] == "in"
    for previous, current in zip(successes, successes[1:]):
        assert previous != current


def test_each_shift_keeps_its_own_duration(clock_engine, clock, store, site_perimeter):
    clock_engine.clock_in("worker-12", ORG_ID, SITE)
    clock.advance(minutes=30)
    first = clock_engine.clock_out("worker-12", SITE)

    clock.advance(hours=1)
    clock_engine.clock_in("worker-12", ORG_ID, SITE)
    clock.advance(minutes=45)
    clock_engine.clock_out("worker-12", SITE)

    stored_first = store.get_shift(first.shift.id)
    assert stored_first.duration_minutes == 30
    durations = sorted(s.duration_minutes for s in store.list_shifts_for_worker("worker-12"))
    assert durations == [30, 45]
