"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException

from timeledger.config import settings
from timeledger.database import database
from timeledger.errors import TimeTrackingError
from timeledger.routers import analytics, time_entries
from timeledger.services.reconciler import ReconciliationService
from timeledger.services.scheduler import ReconciliationScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await database.connect()

    scheduler = None
    if settings.reconcile_interval_seconds > 0:
        reconciler = ReconciliationService(
            database.time_entries,
            batch_size=settings.reconcile_batch_size,
        )
        scheduler = ReconciliationScheduler(reconciler, settings.reconcile_interval_seconds)
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    await database.disconnect()


app = FastAPI(
    title="Time Ledger API",
    description="Time tracking and analytics backend",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "message": message},
    )


@app.exception_handler(TimeTrackingError)
async def time_tracking_error_handler(request: Request, exc: TimeTrackingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error(exc.status_code, str(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg')}")
    return _error(422, "; ".join(messages) or "Validation error")


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return _error(500, "Database error")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# Include routers
app.include_router(time_entries.router)
app.include_router(analytics.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Time Ledger API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def run():
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "timeledger.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
