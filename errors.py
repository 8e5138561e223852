from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger(__name__)


class AppError(HTTPException):
    """
    Base for every failure a handler reports to the caller.
    Subclasses pin the status code; the detail can be overridden per raise.
    """

    status = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(status_code=self.status, detail=detail or self.default_detail)


class ValidationError(AppError):
    status = 400
    default_detail = "Invalid data"


class UploadError(ValidationError):
    default_detail = "Invalid upload"


class AuthError(AppError):
    status = 401
    default_detail = "Not logged in"


class ForbiddenError(AppError):
    status = 403
    default_detail = "Forbidden"


class NotFoundError(AppError):
    status = 404
    default_detail = "Not found"


class StorageError(AppError):
    status = 500
    default_detail = "Storage failure"


def validation_error_body(errors: list) -> dict:
    """Strip pydantic error entries down to location and message."""
    return {
        "detail": ValidationError.default_detail,
        "errors": [
            {
                "loc": [str(part) for part in err.get("loc", ())],
                "msg": err.get("msg", ""),
            }
            for err in errors
        ],
    }


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content=validation_error_body(exc.errors()))


async def _storage_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_failure", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=StorageError.status,
        content={"detail": StorageError.default_detail},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _storage_handler)
