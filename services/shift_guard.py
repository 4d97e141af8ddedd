import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.errors import ActiveShiftConflict, ClockServiceError, TransientStoreError
from models.shift import ClockEvent
from services.shift_store import ShiftStore
from utils.datetime_helpers import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_HOURS = 16.0


def cancel_stale_shifts(
    store: ShiftStore,
    threshold_hours: float = DEFAULT_THRESHOLD_HOURS,
    now: Optional[datetime] = None,
    organization_id: Optional[str] = None,
) -> int:
    """
    Move ACTIVE shifts open longer than `threshold_hours` to CANCELLED.

    Each cancellation goes through the worker's atomic unit and re-checks the
    shift under the lock, so a worker clocking out at the same moment wins
    cleanly. Cancelled shifts never get a duration. Returns how many shifts
    were cancelled. `organization_id` limits the sweep to one organization.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=threshold_hours)
    cancelled = 0

    for candidate in store.find_stale_active_shifts(cutoff, organization_id=organization_id):
        try:
            with store.worker_transaction(candidate.worker_id) as tx:
                # Double-check under the lock (race protection)
                active = tx.find_active_shift()
                if active is None or active.id != candidate.id:
                    continue
                if ensure_utc(active.clock_in_time) >= cutoff:
                    continue

                tx.cancel_shift(
                    active.id,
                    ClockEvent(
                        time=now,
                        # No device position for a system stop; reuse where the shift began
                        location=active.clock_in.location,
                        note=f"Auto-cancelled: shift exceeded {threshold_hours:.2f} hours.",
                    ),
                )
        except ActiveShiftConflict:
            continue
        except TransientStoreError as e:
            logger.warning("[SHIFT_GUARD] Skipping worker %s: %s", candidate.worker_id, e)
            continue
        except ClockServiceError as e:
            # Keep sweeping the remaining workers
            logger.error(
                "[SHIFT_GUARD] Failed on shift %s for worker %s: %s",
                candidate.id,
                candidate.worker_id,
                e,
                exc_info=True,
            )
            continue

        cancelled += 1
        logger.info(
            "[SHIFT_GUARD] Cancelled shift %s for worker %s (open since %s)",
            candidate.id,
            candidate.worker_id,
            candidate.clock_in_time,
        )

    return cancelled


async def run_shift_guard_once_async(
    store: ShiftStore,
    threshold_hours: float = DEFAULT_THRESHOLD_HOURS,
    organization_id: Optional[str] = None,
) -> int:
    """Async wrapper to run a single iteration off the event loop."""
    return await asyncio.to_thread(
        cancel_stale_shifts, store, threshold_hours, None, organization_id
    )


async def run_shift_guard_forever(
    store: ShiftStore, threshold_hours: float, interval_minutes: float
) -> None:
    while True:
        try:
            await run_shift_guard_once_async(store, threshold_hours)
        except TransientStoreError as e:
            logger.warning("[SHIFT_GUARD] Store unavailable, will retry next tick: %s", e)
        except Exception as e:
            logger.error(f"[SHIFT_GUARD] Error during iteration: {e}", exc_info=True)
        await asyncio.sleep(interval_minutes * 60)
