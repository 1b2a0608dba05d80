import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from app.api.diet import router as diet_router
from app.api.plans import router as plans_router
from app.api.programs import router as programs_router
from app.api.schedule import router as schedule_router
from app.config.settings import settings
from app.core.errors import (
    CoachingError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.core.logger import setup_logger
from app.db.models import Base
from app.db.session import get_engine

# Initialize logger
setup_logger(level=settings.log_level, log_file=settings.log_file)

_STATUS_BY_ERROR: dict[type[CoachingError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifespan - make sure tables exist on startup.

    Note: FastAPI requires async for lifespan context manager,
    even if no await operations are used.
    """
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")

    # Yield control to FastAPI (use await to satisfy async requirement)
    await asyncio.sleep(0)
    yield

    logger.info("Coaching API shutting down")


app = FastAPI(title="Coaching Ops", lifespan=lifespan)


app.include_router(plans_router)
app.include_router(programs_router)
app.include_router(diet_router)
app.include_router(schedule_router)

logger.info("FastAPI application initialized")


@app.exception_handler(CoachingError)
async def coaching_error_handler(request: Request, exc: CoachingError) -> JSONResponse:
    """Map the core error taxonomy to HTTP responses."""
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message, "path": getattr(exc, "path", None)},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
