"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bookingflow.config import (
    CORS_ORIGINS,
    DISPLAY_TIMEZONE_NAME,
    LOG_LEVEL,
    SEED_ON_STARTUP,
    VALIDATE_REFERENCE_DATA,
)
from bookingflow.database import Base, SessionLocal, engine
from bookingflow.api.routes import router
# Import models to register them with SQLAlchemy Base
from bookingflow.models.domain import Booking, EventType, User, WorkflowStatus  # noqa: F401
from bookingflow.models.audit import ActivityLog  # noqa: F401
from bookingflow.services.catalog import CatalogService
from bookingflow.services.seed import seed_all

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if SEED_ON_STARTUP:
            seed_all(db)
        if VALIDATE_REFERENCE_DATA:
            # Refuse to start without a default status or an active event type
            CatalogService(db).validate_reference_data()
    finally:
        db.close()

    logger.info("Booking service started (display timezone %s)", DISPLAY_TIMEZONE_NAME)
    yield


# Create FastAPI app
app = FastAPI(
    title="Seasonal Event Bookings",
    description="Booking requests, buffer-aware availability and the staff workflow board.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api", tags=["Bookings"])


@app.get("/")
def root():
    return {"service": "Seasonal Event Bookings", "docs": "/docs"}


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "Seasonal Event Bookings"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
