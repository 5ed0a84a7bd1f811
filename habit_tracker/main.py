"""
FastAPI application entry point for the family habit tracker.
Sets up logging, routes, error responses, and database initialization.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from habit_tracker.api.routes import child, parent, realtime
from habit_tracker.config import LOG_LEVEL
from habit_tracker.data.models import Base
from habit_tracker.data.session import SessionLocal, engine
from habit_tracker.domain.errors import HabitTrackerError
from habit_tracker.domain.services.profile_service import ensure_seed_profile

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Habit Tracker")

app.include_router(parent.router)
app.include_router(child.router)
app.include_router(realtime.router)


@app.exception_handler(HabitTrackerError)
async def handle_domain_error(request: Request, exc: HabitTrackerError) -> JSONResponse:
    """Render a typed domain failure as ``{"detail", "code", ...payload}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, **exc.payload()},
    )


@app.on_event("startup")
def on_startup() -> None:
    """Create missing tables and make sure a parent profile exists."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        ensure_seed_profile(session)
    finally:
        session.close()


@app.get("/health")
def health():
    return {"status": "ok"}
