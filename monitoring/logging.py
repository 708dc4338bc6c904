"""
Structured Logging - Monitoring Layer

Structured logging for the gateway with:
- JSON formatting for log aggregation (production)
- Text formatting with request/session correlation (development, tests)
- Context injection of request ID and MCP session ID
- Per-module log levels

@.architecture
Incoming: app.py, main.py, api/dependencies.py, stream/gateway.py, All modules via get_logger() --- {str log_level, str format_type, Dict[str, str] module_levels, str request_id/session_id}
Processing: configure_logging(), JSONFormatter.format(), ContextFilter.filter(), set_request_context() --- {4 jobs: log_configuration, context_injection, formatting, structured_logging}
Outgoing: sys.stdout, Optional log file, All modules --- {StructuredLogger instances, JSON or text log lines}
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Context variables for request tracking
request_id_ctx: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
session_id_ctx: ContextVar[Optional[str]] = ContextVar('session_id', default=None)

# Libraries that log every HTTP exchange or protocol frame at INFO
NOISY_LOGGERS = {
    'httpx': 'WARNING',
    'httpcore': 'WARNING',
    'mcp': 'WARNING',
    'uvicorn.access': 'WARNING',
    'asyncio': 'WARNING',
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    One JSON object per line, carrying the request and session correlation
    IDs when they are set.
    """

    def __init__(self, include_traceback: bool = True, include_context: bool = True):
        super().__init__()
        self.include_traceback = include_traceback
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if self.include_context:
            request_id = request_id_ctx.get()
            session_id = session_id_ctx.get()
            if request_id:
                log_data['request_id'] = request_id
            if session_id:
                log_data['session_id'] = session_id

        if record.exc_info and self.include_traceback:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_fields'):
            log_data['extra'] = record.extra_fields

        return json.dumps(log_data, default=str)


class ContextFilter(logging.Filter):
    """Copies the correlation context onto every record for text formatters."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or '-'
        record.session_id = session_id_ctx.get() or '-'
        return True


class StructuredLogger:
    """
    Wrapper for Python logger with structured logging support.

    Keyword arguments passed to any level method end up under ``extra`` in
    JSON output.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log_with_context(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        extra = {'extra_fields': kwargs} if kwargs else {}
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log_with_context(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log_with_context(logging.ERROR, message, exc_info=True, **kwargs)


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[Path] = None,
    enable_console: bool = True,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("json" or "text")
        log_file: Optional file path for log output
        enable_console: Enable console (stdout) logging
        module_levels: Per-module log levels (e.g. {"mcp": "DEBUG"})
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-24s | [%(request_id)s|%(session_id)s] | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []
    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(ContextFilter())
        handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ContextFilter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = handlers

    levels = dict(NOISY_LOGGERS)
    levels.update(module_levels or {})
    for module_name, module_level in levels.items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper(), logging.INFO))


def get_logger(name: str) -> StructuredLogger:
    """
    Get structured logger for module.

    Args:
        name: Logger name (usually __name__)
    """
    return StructuredLogger(name)


def set_request_context(request_id: Optional[str] = None, session_id: Optional[str] = None) -> None:
    """Set correlation IDs for the current task."""
    if request_id:
        request_id_ctx.set(request_id)
    if session_id:
        session_id_ctx.set(session_id)


def clear_request_context() -> None:
    request_id_ctx.set(None)
    session_id_ctx.set(None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def get_session_id() -> Optional[str]:
    return session_id_ctx.get()


LOGGING_PRESETS = {
    'development': {
        'level': 'INFO',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {},
    },
    'production': {
        'level': 'INFO',
        'format_type': 'json',
        'enable_console': True,
        'module_levels': {},
    },
    'testing': {
        'level': 'WARNING',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {'mcp': 'ERROR'},
    },
}


def configure_from_preset(preset: str = 'development', **overrides: Any) -> None:
    """
    Configure logging from preset.

    Args:
        preset: Preset name ('development', 'production', or 'testing')
        **overrides: Override preset values; None values are ignored
    """
    if preset not in LOGGING_PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(LOGGING_PRESETS.keys())}")

    config = dict(LOGGING_PRESETS[preset])
    config.update({key: value for key, value in overrides.items() if value is not None})
    configure_logging(**config)
