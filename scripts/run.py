#!/usr/bin/env python3
"""Serve the CareClock API with Uvicorn, optionally seeding the demo perimeter first."""

import logging
import os

import uvicorn

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

logger = logging.getLogger(__name__)


def _flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")


def server_settings() -> dict:
    return {
        "host": os.getenv("APP_HOST", "127.0.0.1"),
        "port": int(os.getenv("APP_PORT", "8000")),
        "reload": _flag("APP_RELOAD", "True"),
        "log_level": os.getenv("APP_LOG_LEVEL", "info"),
    }


def seed_demo_data() -> None:
    # Imported here so a plain run never touches the database before uvicorn starts
    from db.seed import seed_perimeters
    from db.session import get_engine, init_db
    from services.perimeter_registry import PerimeterRegistry

    engine = get_engine()
    init_db(engine)
    seed_perimeters(PerimeterRegistry(engine))


def main() -> None:
    settings = server_settings()
    logging.basicConfig(level=settings["log_level"].upper())

    if _flag("SEED_DEMO_PERIMETER"):
        seed_demo_data()

    logger.info(
        "Starting CareClock API on %s:%s (reload=%s)",
        settings["host"],
        settings["port"],
        settings["reload"],
    )
    uvicorn.run(
        "main:app",
        app_dir=PROJECT_ROOT,
        reload_dirs=[PROJECT_ROOT] if settings["reload"] else None,
        **settings,
    )


if __name__ == "__main__":
    main()
