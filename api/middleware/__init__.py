"""
API Middleware Layer

Error handling, error rendering and HTTP request metrics for the REST
surface. CORS comes from FastAPI.
"""

from .error_handler import (
    ErrorHandlerMiddleware,
    ErrorHandlerConfig,
    create_error_handler_middleware,
    handle_error,
    register_exception_handlers,
)

__all__ = [
    # Error handling
    'ErrorHandlerMiddleware',
    'ErrorHandlerConfig',
    'create_error_handler_middleware',
    'handle_error',
    'register_exception_handlers',
]
