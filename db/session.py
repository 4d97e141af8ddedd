from functools import lru_cache
import os

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Load environment variables from .env file
load_dotenv()

# Connects app to PostgreSQL database


def build_database_url() -> str:
    # An explicit URL wins (also how tests and local SQLite runs are wired)
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    # Get database connection details from environment variables
    db_host = os.getenv("DB_HOST")
    db_port = os.getenv("DB_PORT", "5432")  # Default PostgreSQL port
    db_name = os.getenv("DB_NAME")
    db_user = os.getenv("DB_USER")
    db_password = os.getenv("DB_PASSWORD")
    instance_connection_name = os.getenv("INSTANCE_CONNECTION_NAME")  # For Cloud SQL Proxy

    # If INSTANCE_CONNECTION_NAME is set, DB_HOST is not required for connection string
    required_vars_for_tcp = ["DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD"]
    required_vars_for_socket = ["DB_NAME", "DB_USER", "DB_PASSWORD", "INSTANCE_CONNECTION_NAME"]

    if instance_connection_name:
        missing_vars = [var for var in required_vars_for_socket if not os.getenv(var)]
        if missing_vars:
            raise ValueError(f"Missing required environment variables for Cloud SQL (socket): {', '.join(missing_vars)}")
        # Construct PostgreSQL connection URL for Cloud SQL (Unix socket)
        return f"postgresql+psycopg2://{db_user}:{db_password}@/{db_name}?host=/cloudsql/{instance_connection_name}"

    missing_vars = [var for var in required_vars_for_tcp if not os.getenv(var)]
    if missing_vars:
        raise ValueError(f"Missing required environment variables for TCP: {', '.join(missing_vars)}")
    # Construct PostgreSQL connection URL for TCP (e.g., local development)
    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def make_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sync routes run in FastAPI's threadpool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)


# The Wire / Link That Lets Us Pass Data from App -> db
# Note: DB_ECHO=true will log all SQL statements, keep it off in production
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    echo = os.getenv("DB_ECHO", "False").lower() in ("true", "1", "t")
    return make_engine(build_database_url(), echo=echo)


def init_db(engine: Engine) -> None:
    # Table models must be imported so SQLModel knows about them
    import models  # noqa: F401

    SQLModel.metadata.create_all(engine)

