"""
Global error handling middleware.
"""

import time
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError

from subshare.utils.logger import get_logger
from subshare.utils.exceptions import SubShareError, AuthenticationError

logger = get_logger(__name__)


def error_response(exc: SubShareError) -> JSONResponse:
    """Render a SubShareError as {error, message, details} with its status."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def subshare_error_handler(request: Request, exc: SubShareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies answer 400 VALIDATION_FAILED like service-level checks."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_FAILED",
            "message": "Request validation failed",
            "details": {"errors": errors},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SubShareError, subshare_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request logging and last-resort error handling.

    Business errors are rendered by the exception handlers above; anything
    that escapes them becomes a 500 with a generic body.
    """

    async def dispatch(self, request: Request, call_next):
        """Process request with error handling."""
        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
            )

            return response

        except SubShareError as e:
            return error_response(e)

        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error: {e}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "DATABASE_ERROR",
                    "message": "A database error occurred",
                    "details": {},
                }
            )

        except Exception as e:
            logger.error(f"Unhandled exception: {e}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": {},
                }
            )
