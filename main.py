import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.admin_maintenance_routes import router as admin_maintenance_router
from api.admin_perimeter_routes import router as admin_perimeter_router
from api.manager_routes import router as manager_router
from api.perimeter_routes import router as perimeter_router
from api.time_routes import router as time_router
from db.session import get_engine, init_db
from services.container import build_container
from services.shift_guard import DEFAULT_THRESHOLD_HOURS, run_shift_guard_forever

# This file is the control center of the whole application

# Load environment variables from .env file, if it exists
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("APP_LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# Default values can be provided if the env var is not set
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:3000")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN")

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    DEV_DOMAIN,
    PRODUCTION_DOMAIN,
    "http://127.0.0.1:3000",  # Additional fallback for local dev
]

# Remove any None values and duplicates
allowed_origins_list = list(set([origin for origin in allowed_origins_list if origin]))

logger.info(f"CORS: Allowing origins: {allowed_origins_list}")


# When We Start, Create the DB Tables if they don't exist and Wire the Services
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_engine()
    init_db(engine)
    app.state.container = build_container(engine)

    guard_task = None
    if os.getenv("SHIFT_GUARD_ENABLED", "False").lower() in ("true", "1", "t"):
        threshold = float(os.getenv("SHIFT_GUARD_THRESHOLD_HOURS", str(DEFAULT_THRESHOLD_HOURS)))
        interval = float(os.getenv("SHIFT_GUARD_INTERVAL_MINUTES", "15"))
        logger.info(f"Shift guard enabled: threshold={threshold}h, every {interval} min")
        guard_task = asyncio.create_task(
            run_shift_guard_forever(app.state.container.shift_store, threshold, interval)
        )

    yield

    if guard_task is not None:
        guard_task.cancel()
        with suppress(asyncio.CancelledError):
            await guard_task


# Starts Fast API Up; Init
app = FastAPI(title="CareClock", lifespan=lifespan)

# Allow requests from the web client (dev & production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list, # Use the constructed list
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Connects Routes From Time_Routes (clock-in / out) to main app
app.include_router(time_router, prefix="/time", tags=["Time"])
app.include_router(perimeter_router, prefix="/perimeter", tags=["Perimeter", "Geofence"])
app.include_router(admin_perimeter_router, prefix="/admin/perimeter", tags=["Admin", "Geofence"])
app.include_router(manager_router, prefix="/manager", tags=["Manager", "Live Staff"])
app.include_router(admin_maintenance_router, prefix="/admin/maintenance", tags=["Admin", "Maintenance"])


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
