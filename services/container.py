import os
from dataclasses import dataclass

from sqlalchemy.engine import Engine

from services.clock_engine import ClockEngine
from services.perimeter_registry import PerimeterRegistry
from services.shift_store import DEFAULT_LOCK_TIMEOUT_SECONDS, ShiftStore


# Wired once per application; routes receive it through core.deps
@dataclass(frozen=True)
class Container:
    engine: Engine
    shift_store: ShiftStore
    perimeter_registry: PerimeterRegistry
    clock_engine: ClockEngine


def build_container(engine: Engine) -> Container:
    lock_timeout = float(
        os.getenv("CLOCK_LOCK_TIMEOUT_SECONDS", str(DEFAULT_LOCK_TIMEOUT_SECONDS))
    )
    shift_store = ShiftStore(engine, lock_timeout=lock_timeout)
    perimeter_registry = PerimeterRegistry(engine)
    clock_engine = ClockEngine(shift_store, perimeter_registry)
    return Container(
        engine=engine,
        shift_store=shift_store,
        perimeter_registry=perimeter_registry,
        clock_engine=clock_engine,
    )
