# conduct_scoring/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from conduct_scoring.core.config import settings
from conduct_scoring.core.errors import (
    InvalidStateError,
    OutOfRangeError,
    PermissionDeniedError,
    ScoringError,
    ValidationError,
)
from conduct_scoring.core.logging_config import setup_logging
from conduct_scoring.db.init_db import init_db
from conduct_scoring.api.v1.endpoints import (
    auth,
    grading,
    health,
    notifications,
    scores,
    students,
    users,
)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain error -> HTTP status. InvalidStateError also covers StaleRecordError.
ERROR_STATUS = {
    InvalidStateError: 409,
    OutOfRangeError: 422,
    ValidationError: 422,
    PermissionDeniedError: 403,
}


@app.exception_handler(ScoringError)
def scoring_error_handler(request: Request, exc: ScoringError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400
    )
    logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.on_event("startup")
def on_startup():
    setup_logging()
    init_db()


API_PREFIX = "/api/v1"

app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(health.router, prefix=API_PREFIX)
app.include_router(scores.router, prefix=API_PREFIX)
app.include_router(grading.router, prefix=API_PREFIX)
app.include_router(students.router, prefix=API_PREFIX)
app.include_router(notifications.router, prefix=API_PREFIX)
