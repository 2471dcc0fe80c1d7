"""
Boundary error mapping.

Repositories let store errors propagate (their transaction has already
rolled back); here they become HTTP responses:

  UNIQUE constraint       -> 409  Duplicate entry
  FOREIGN KEY constraint  -> 400  Referenced record not found
  NOT NULL constraint     -> 400  Required field is missing
  other constraint        -> 400  Constraint violation
  any other sqlite3.Error -> 500  Database error (message only in development)
  request validation      -> 400  ValidationError with field details
"""
import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Config

logger = logging.getLogger(__name__)

_CONSTRAINT_ERRORS = (
    ("UNIQUE constraint failed",      409, "Duplicate entry"),
    ("FOREIGN KEY constraint failed", 400, "Referenced record not found"),
    ("NOT NULL constraint failed",    400, "Required field is missing"),
)


def classify_integrity_error(exc: sqlite3.IntegrityError) -> tuple[int, str]:
    message = str(exc)
    for marker, status_code, error in _CONSTRAINT_ERRORS:
        if marker in message:
            return status_code, error
    return 400, "Constraint violation"


def register_error_handlers(app: FastAPI, config: Config) -> None:

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(sqlite3.IntegrityError)
    async def _integrity_error(request: Request, exc: sqlite3.IntegrityError):
        status_code, error = classify_integrity_error(exc)
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": error})

    @app.exception_handler(sqlite3.Error)
    async def _database_error(request: Request, exc: sqlite3.Error):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        content = {"error": "Database error"}
        if config.is_development:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)
