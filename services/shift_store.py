import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlmodel import Session, select

from core.errors import ActiveShiftConflict, InternalError, TransientStoreError
from models.shift import ClockEvent, Shift, ShiftStatus

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


class _WorkerLocks:
    """
    Hands out one lock per worker id. Entries vanish once nobody holds a
    reference, so the table only ever contains workers with requests in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, worker_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(worker_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[worker_id] = lock
            return lock


class ShiftTransaction:
    """
    Read/write view of one worker's shifts inside a single database
    transaction. Only obtained through ShiftStore.worker_transaction().
    """

    def __init__(self, session: Session, worker_id: str):
        self._session = session
        self.worker_id = worker_id

    def find_active_shift(self) -> Optional[Shift]:
        # FOR UPDATE on PostgreSQL; SQLite ignores it
        active = self._session.exec(
            select(Shift)
            .where(Shift.worker_id == self.worker_id)
            .where(Shift.status == ShiftStatus.ACTIVE)
            .with_for_update()
        ).all()
        if len(active) > 1:
            # The unique index makes this unreachable unless the schema was bypassed
            raise InternalError(
                f"Worker {self.worker_id} has {len(active)} ACTIVE shifts."
            )
        return active[0] if active else None

    def create_active_shift(self, organization_id: str, clock_in: ClockEvent) -> Shift:
        now = datetime.now(timezone.utc)
        shift = Shift(
            worker_id=self.worker_id,
            organization_id=organization_id,
            status=ShiftStatus.ACTIVE,
            clock_in_time=clock_in.time,
            clock_in_lat=clock_in.location.latitude,
            clock_in_lng=clock_in.location.longitude,
            clock_in_note=clock_in.note,
            created_at=now,
            updated_at=now,
        )
        self._session.add(shift)
        try:
            # Flush now so the unique index fires here rather than at commit
            self._session.flush()
        except IntegrityError as e:
            raise ActiveShiftConflict(
                f"Worker {self.worker_id} already has an ACTIVE shift."
            ) from e
        return shift

    def complete_shift(
        self, shift_id: str, clock_out: ClockEvent, duration_minutes: int
    ) -> Shift:
        return self._close_shift(shift_id, ShiftStatus.COMPLETED, clock_out, duration_minutes)

    def cancel_shift(self, shift_id: str, clock_out: ClockEvent) -> Shift:
        return self._close_shift(shift_id, ShiftStatus.CANCELLED, clock_out, None)

    def _close_shift(
        self,
        shift_id: str,
        status: ShiftStatus,
        clock_out: ClockEvent,
        duration_minutes: Optional[int],
    ) -> Shift:
        # Conditional update: only a row that is still ACTIVE can be closed,
        # which also keeps duration_minutes write-once
        result = self._session.execute(
            update(Shift)
            .where(Shift.id == shift_id)
            .where(Shift.worker_id == self.worker_id)
            .where(Shift.status == ShiftStatus.ACTIVE)
            .values(
                status=status,
                clock_out_time=clock_out.time,
                clock_out_lat=clock_out.location.latitude,
                clock_out_lng=clock_out.location.longitude,
                clock_out_note=clock_out.note,
                duration_minutes=duration_minutes,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ActiveShiftConflict(f"Shift {shift_id} is no longer ACTIVE.")

        shift = self._session.get(Shift, shift_id)
        if shift is None:
            raise InternalError(f"Shift {shift_id} disappeared mid-transaction.")
        self._session.refresh(shift)
        return shift


class ShiftStore:
    """
    Durable shift records plus the per-worker atomic unit the clock engine
    wraps every transition in.

    Two layers keep a worker to at most one ACTIVE shift:
      * an in-process lock per worker, held across read-decide-write;
      * the `uq_shift_active_worker` partial unique index and conditional
        updates, for writers in other processes.
    """

    def __init__(self, engine: Engine, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self.engine = engine
        self.lock_timeout = lock_timeout
        self._locks = _WorkerLocks()

    def _session(self) -> Session:
        # Returned shifts are read after commit, outside the session
        return Session(self.engine, expire_on_commit=False)

    @contextmanager
    def worker_transaction(self, worker_id: str) -> Iterator[ShiftTransaction]:
        lock = self._locks.get(worker_id)
        if not lock.acquire(timeout=self.lock_timeout):
            raise TransientStoreError(
                f"Timed out waiting for another clock request for worker {worker_id}."
            )
        try:
            try:
                with self._session() as session, session.begin():
                    yield ShiftTransaction(session, worker_id)
            except IntegrityError as e:
                # Raised at commit by anything the flush in create_active_shift missed
                raise ActiveShiftConflict(str(e.orig)) from e
            except (OperationalError, DBAPIError) as e:
                logger.warning("Shift store unavailable for worker %s: %s", worker_id, e)
                raise TransientStoreError("Shift store is unavailable.") from e
        finally:
            lock.release()

    # --- Read-only queries ---

    def find_active_shift(self, worker_id: str) -> Optional[Shift]:
        with self._reading() as session:
            return session.exec(
                select(Shift)
                .where(Shift.worker_id == worker_id)
                .where(Shift.status == ShiftStatus.ACTIVE)
            ).first()

    def get_shift(self, shift_id: str) -> Optional[Shift]:
        with self._reading() as session:
            return session.get(Shift, shift_id)

    def list_shifts_for_worker(
        self,
        worker_id: str,
        limit: int = 50,
        offset: int = 0,
        organization_id: Optional[str] = None,
    ) -> List[Shift]:
        statement = select(Shift).where(Shift.worker_id == worker_id)
        if organization_id is not None:
            statement = statement.where(Shift.organization_id == organization_id)
        with self._reading() as session:
            return list(
                session.exec(
                    statement.order_by(Shift.clock_in_time.desc()).offset(offset).limit(limit)
                ).all()
            )

    def list_active_shifts(self, organization_id: str) -> List[Shift]:
        with self._reading() as session:
            return list(
                session.exec(
                    select(Shift)
                    .where(Shift.organization_id == organization_id)
                    .where(Shift.status == ShiftStatus.ACTIVE)
                    .order_by(Shift.clock_in_time.desc())
                ).all()
            )

    def list_shifts(
        self,
        organization_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Shift], int]:
        """Page of an organization's shifts (newest first) and the total match count."""
        conditions = [Shift.organization_id == organization_id]
        if start is not None:
            conditions.append(Shift.clock_in_time >= start)
        if end is not None:
            conditions.append(Shift.clock_in_time <= end)

        with self._reading() as session:
            shifts = session.exec(
                select(Shift)
                .where(*conditions)
                .order_by(Shift.clock_in_time.desc())
                .offset(offset)
                .limit(limit)
            ).all()
            total = session.exec(
                select(func.count()).select_from(Shift).where(*conditions)
            ).one()
        return list(shifts), total

    def find_stale_active_shifts(
        self, started_before: datetime, organization_id: Optional[str] = None
    ) -> List[Shift]:
        statement = (
            select(Shift)
            .where(Shift.status == ShiftStatus.ACTIVE)
            .where(Shift.clock_in_time < started_before)
        )
        if organization_id is not None:
            statement = statement.where(Shift.organization_id == organization_id)
        with self._reading() as session:
            return list(session.exec(statement).all())

    @contextmanager
    def _reading(self) -> Iterator[Session]:
        try:
            with self._session() as session:
                yield session
        except (OperationalError, DBAPIError) as e:
            logger.warning("Shift store read failed: %s", e)
            raise TransientStoreError("Shift store is unavailable.") from e
