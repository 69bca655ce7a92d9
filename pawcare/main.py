import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pawcare.api.routes import appointments, booking_sessions, clinics, slots
from pawcare.core.config import settings, _ENV_FILE
from pawcare.core.errors import BookingError
from pawcare.services.session_store import BookingSessionStore

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


def _prune_booking_sessions(store: BookingSessionStore) -> None:
    """Drop wizard sessions nobody has touched for booking_session_ttl_minutes."""
    try:
        n = store.prune(timedelta(minutes=settings.booking_session_ttl_minutes))
        if n:
            logger.info("Booking session cleanup: removed %d idle session(s)", n)
    except Exception as e:
        logger.exception("Booking session cleanup failed: %s", e)


async def _cleanup_loop(store: BookingSessionStore) -> None:
    while True:
        await asyncio.sleep(settings.session_cleanup_interval_seconds)
        _prune_booking_sessions(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Booking sessions expire after %d minutes idle (checked every %ds)",
        settings.booking_session_ttl_minutes,
        settings.session_cleanup_interval_seconds,
    )
    task = asyncio.create_task(_cleanup_loop(app.state.booking_sessions))
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title="PawCare Booking API",
    description="Appointment booking for pet owners: clinics, slots, booking wizard",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)
app.state.booking_sessions = BookingSessionStore()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(clinics.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(booking_sessions.router, prefix="/api/v1")
app.include_router(appointments.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Booking rejections are expected outcomes: one message plus a machine-readable code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
