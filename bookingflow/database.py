"""Engine and session factory for the booking store."""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from bookingflow.config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Hosting providers hand out postgres:// URLs; SQLAlchemy only accepts postgresql://."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def build_engine(url: str, **overrides) -> Engine:
    """
    Create an engine for the booking store.

    SQLite connections are shared with FastAPI's worker threads, so the
    same-thread check is disabled. Other backends get a small pre-pinged pool.
    """
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
    else:
        options = {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}
    options.update(overrides)

    engine = create_engine(url, **options)
    logger.info("Booking store engine configured (%s)", engine.url.get_backend_name())
    return engine


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session for the API routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
