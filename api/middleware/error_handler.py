"""
Global Error Handler Middleware - API Layer

Centralized error handling with sanitized error responses, logging and
per-request HTTP metrics for the REST surface.

@.architecture
Incoming: app.py (middleware + exception handler registration), Exception objects from endpoints --- {FastAPI Request objects, HueGatewayError, HTTPException, RequestValidationError, Python exceptions}
Processing: __call__(), dispatch(), handle_error(), _classify_error(), _build_error_response(), _log_error(), _record() --- {6 jobs: exception_catching, error_classification, response_formatting, sanitization, logging, request_metrics}
Outgoing: monitoring/logging.py, monitoring/metrics.py, REST clients (HTTP) --- {structured error logs, request counters, JSONResponse with standardized error format: code/message/type/hint}

The MCP stream path is passed straight through: it writes its own JSON-RPC
errors and streams SSE bodies that must not be buffered.
"""

import time
import traceback
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from core.hue.errors import HueGatewayError
from monitoring import get_logger, setup_standard_metrics

logger = get_logger(__name__)


class ErrorHandlerConfig:
    """Configuration for error handler."""

    def __init__(
        self,
        include_traceback: bool = False,
        sanitize_errors: bool = True,
        log_errors: bool = True,
        passthrough_prefixes: Iterable[str] = (),
        custom_error_messages: Optional[Dict[int, str]] = None
    ):
        """
        Initialize error handler configuration.

        Args:
            include_traceback: Include traceback in response (dev only)
            sanitize_errors: Replace unexpected 500 messages with a generic one
            log_errors: Log errors to logger
            passthrough_prefixes: Paths served without buffering or error rewriting
            custom_error_messages: Hint texts for HTTP status codes
        """
        self.include_traceback = include_traceback
        self.sanitize_errors = sanitize_errors
        self.log_errors = log_errors
        self.passthrough_prefixes = tuple(passthrough_prefixes)
        self.custom_error_messages = custom_error_messages or self._default_messages()

    @staticmethod
    def _default_messages() -> Dict[int, str]:
        """Default hints for the status codes the gateway answers with."""
        return {
            400: "Invalid request",
            404: "Resource not found",
            405: "Method not allowed",
            428: "Press the link button on the Hue bridge, then retry within 30 seconds",
            500: "Internal server error",
            502: "Hue bridge error",
            503: "Service unavailable",
            504: "Hue bridge did not answer in time",
        }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for global error handling.

    Features:
    - Catches and formats exceptions that escape the endpoint layer
    - Sanitizes unexpected error messages
    - Logs errors with request context
    - Records request count and latency per route
    """

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[ErrorHandlerConfig] = None
    ):
        super().__init__(app)
        self.config = config or ErrorHandlerConfig()
        self._metrics = setup_standard_metrics()
        logger.info("Error handler middleware initialized")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.config.passthrough_prefixes \
                and scope["path"].startswith(self.config.passthrough_prefixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            response = handle_error(request, e, self.config)
        self._record(request, response.status_code, time.perf_counter() - start)
        return response

    def _record(self, request: Request, status_code: int, duration: float) -> None:
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or "unmatched"
        self._metrics["http_requests_total"].inc(
            method=request.method, endpoint=endpoint, status_code=str(status_code)
        )
        self._metrics["http_request_duration_seconds"].observe(
            duration, method=request.method, endpoint=endpoint
        )


# =============================================================================
# Error Rendering
# =============================================================================

def handle_error(request: Request, error: Exception, config: ErrorHandlerConfig) -> JSONResponse:
    """
    Handle exception and return formatted error response.

    Args:
        request: Request that caused the error
        error: Exception that was raised
        config: Rendering options

    Returns:
        JSONResponse with error details
    """
    status_code, error_message, error_type = _classify_error(error, config)

    if config.log_errors:
        _log_error(request, error, status_code)

    return JSONResponse(
        status_code=status_code,
        content=_build_error_response(
            config,
            status_code=status_code,
            error_message=error_message,
            error_type=error_type,
            error=error if config.include_traceback and status_code >= 500 else None,
        ),
    )


def _classify_error(error: Exception, config: ErrorHandlerConfig) -> Tuple[int, str, str]:
    """Map an exception to (status_code, message, error_type)."""
    error_type = type(error).__name__

    if isinstance(error, HueGatewayError):
        return error.status_code, error.message, error_type
    if isinstance(error, RequestValidationError):
        return 400, _validation_message(error), "ValidationError"
    if isinstance(error, StarletteHTTPException):
        return error.status_code, str(error.detail), error_type

    message = "An error occurred processing your request" if config.sanitize_errors else str(error)
    return 500, message, error_type


def _validation_message(error: RequestValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        problems.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(problems) or "Invalid request body"


def _build_error_response(
    config: ErrorHandlerConfig,
    status_code: int,
    error_message: str,
    error_type: str,
    error: Optional[Exception] = None
) -> Dict[str, Any]:
    response = {
        "error": {
            "code": status_code,
            "message": error_message,
            "type": error_type
        }
    }

    if status_code in config.custom_error_messages:
        response["error"]["hint"] = config.custom_error_messages[status_code]

    if error is not None:
        response["error"]["traceback"] = traceback.format_exception(
            type(error), error, error.__traceback__
        )

    return response


def _log_error(request: Request, error: Exception, status_code: int) -> None:
    where = f"{request.method} {request.url.path}"
    if status_code >= 500:
        logger.error(f"Server error on {where}: {type(error).__name__}: {error}", exc_info=error)
    else:
        logger.warning(f"Client error on {where} ({status_code}): {error}")


# =============================================================================
# Factory
# =============================================================================

def create_error_handler_middleware(
    development: bool = False,
    passthrough_prefixes: Iterable[str] = ()
):
    """
    Create error handler middleware with environment-appropriate config.

    Args:
        development: Whether running in development mode
        passthrough_prefixes: Paths left untouched (the MCP stream endpoint)

    Returns:
        Middleware class and kwargs for FastAPI
    """
    config = ErrorHandlerConfig(
        include_traceback=development,
        sanitize_errors=not development,
        log_errors=True,
        passthrough_prefixes=passthrough_prefixes,
    )
    return (ErrorHandlerMiddleware, {"config": config})


def register_exception_handlers(app: FastAPI, config: Optional[ErrorHandlerConfig] = None) -> None:
    """
    Render gateway, HTTP and request-validation errors in the same format.

    Malformed JSON and schema violations answer 400 rather than FastAPI's 422.
    """
    config = config or ErrorHandlerConfig()

    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        return handle_error(request, exc, config)

    app.add_exception_handler(HueGatewayError, _handler)
    app.add_exception_handler(RequestValidationError, _handler)
    app.add_exception_handler(StarletteHTTPException, _handler)
