import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from daystack.config import DATABASE_URL

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def engine_options(url: str) -> dict:
    """Connection settings for SQLite (local, tests) or PostgreSQL (hosted)."""
    if not url.startswith("sqlite"):
        return {"pool_size": 5, "max_overflow": 10, "pool_timeout": 30, "pool_recycle": 1800}

    options = {"connect_args": {"check_same_thread": False}}
    if url in IN_MEMORY_URLS:
        # An in-memory database exists per connection, so all sessions share one
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, echo=False, **engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency - one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the tables for every DayStack model (and ./data for the default SQLite file)."""
    if DATABASE_URL.startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)

    import daystack.models  # noqa: F401  registers the models on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")
