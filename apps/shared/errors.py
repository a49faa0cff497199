"""
Error types and handlers

Every expected failure is raised as a ServiceError subclass carrying its
HTTP status and JSON body. Unexpected exceptions are logged with a short
correlation id and turned into a 500, either by a route class built with
handler_error_route or, outside any route, by the service's error middleware.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map to a fixed HTTP response."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Internal Server Error"
    default_message: Optional[str] = None

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None, **extra: Any):
        self.error = error or self.default_error
        self.message = message if message is not None else self.default_message
        self.extra = extra
        super().__init__(self.message or self.error)

    def to_dict(self) -> dict:
        body: dict = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        body.update(self.extra)
        return body


class MissingFields(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "Missing required fields"


class MissingSlug(MissingFields):
    default_error = "Slug is required"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_error = "Already exists"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "Unauthorized"


class MethodNotAllowed(ServiceError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_error = "Method not allowed"


class StoreUnconfigured(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Store not configured"


class Internal(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Internal Server Error"


class ListHandlerError(ServiceError):
    """Unexpected failure while serving /api/blog."""
    default_error = "Failed to retrieve blog posts"
    default_message = "An error occurred while fetching blog posts"


class PostHandlerError(ServiceError):
    """Unexpected failure while serving /api/blog/{slug}."""
    default_error = "Failed to process blog post"
    default_message = "An error occurred while processing the blog post"


def log_exception(error: Exception, context: str) -> str:
    """
    Log full error details server-side.

    Args:
        error: The exception that occurred
        context: Description of what operation failed (e.g., "Blog request")

    Returns:
        Short error id for correlating the log line with the response
    """
    error_id = str(uuid.uuid4())[:8]
    logger.error(
        f"{context} failed [{error_id}]: {type(error).__name__}: {str(error)}",
        exc_info=error,
    )
    return error_id


def register_error_handlers(app: FastAPI) -> None:
    """Render ServiceError subclasses as JSON responses."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            log_exception(exc, f"{request.method} {request.url.path}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def handler_error_route(error_type: type[ServiceError], context: str) -> type[APIRoute]:
    """
    Build a route class that answers unexpected failures with error_type.

    Everything a route does runs inside the boundary, including dependency
    resolution and body parsing. ServiceErrors and HTTP errors pass through
    to their regular handlers; anything else becomes a 500 whose body is
    error_type with the exception message as "details".
    """

    class HandlerErrorRoute(APIRoute):
        def get_route_handler(self) -> Callable:
            route_handler = super().get_route_handler()

            async def guarded_route_handler(request: Request) -> Response:
                try:
                    return await route_handler(request)
                except (ServiceError, HTTPException, RequestValidationError):
                    raise
                except Exception as exc:
                    error_id = log_exception(exc, context)
                    return JSONResponse(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content=error_type(details=str(exc)).to_dict(),
                        headers={"X-Error-Id": error_id},
                    )

            return guarded_route_handler

    return HandlerErrorRoute


def setup_internal_error_handler(
    app: FastAPI,
    render: Callable[[Exception], dict],
    context: str,
) -> None:
    """
    Catch exceptions no handler converted and answer 500 with render(exc).

    Runs as the innermost middleware so the outer CORS middleware still
    decorates the response.
    """

    @app.middleware("http")
    async def catch_unhandled(request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = log_exception(exc, context)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=render(exc),
                headers={"X-Error-Id": error_id},
            )
