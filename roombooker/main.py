from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from roombooker.db import init_database
from roombooker.domain.errors import (
    BookingError,
    ConflictError,
    DependencyError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from roombooker.routers import auth, history, notifications, reservations, rooms
from roombooker.schemas.reservation import ConflictOut
from roombooker.services.locks import room_locks
from roombooker.utils.config import get_settings
from roombooker.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)

_STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
    DependencyError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    "lifespan for initing logging, database and room locks"
    configure_logging()
    init_database()
    app.state.room_locks = room_locks
    yield


settings = get_settings()

app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description="Room reservation service: conflict-checked booking, review workflow, history and notifications.",
    version=settings.app_version,
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    content = {"detail": str(exc)}
    if isinstance(exc, ConflictError):
        content["conflicts"] = [
            ConflictOut.model_validate(item).model_dump(mode="json") for item in exc.blocking
        ]
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s refused (%s): %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=content)


app.include_router(auth.router)
app.include_router(rooms.router)
app.include_router(reservations.router)
app.include_router(history.router)
app.include_router(notifications.router)
