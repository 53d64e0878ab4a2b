"""Structured logging helpers for document-analyzer."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# Request ID shared by every log line emitted while handling one upload
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class ContextLogger:
    """Logger wrapper that renders structured data as key=value pairs."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _format_extra_data(self, extra_data: Optional[dict[str, Any]]) -> str:
        """Render ``extra_data`` as a bracketed ``key=value`` suffix."""
        if not extra_data:
            return ""
        parts = [f"{k}={v}" for k, v in extra_data.items()]
        return " [" + ", ".join(parts) + "]"

    def _log(self, level: int, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Emit ``msg`` with its structured data and the current request ID.

        The caller's dict is copied before the request ID is added.
        """
        request_id = request_id_var.get()
        if request_id:
            extra_data = dict(extra_data or {})
            extra_data["request_id"] = request_id

        self.logger.log(level, msg + self._format_extra_data(extra_data), **kwargs)

    def debug(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Per-stage detail such as page counts and model timings."""
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Completed extractions, analyses and summary refreshes."""
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Recoverable problems: unsupported uploads, model fallbacks."""
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Failed extractions and model calls; pass ``exc_info`` for the traceback."""
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO") -> None:
    """Send all log output to stdout at ``log_level``.

    Replaces any handlers already installed on the root logger, and keeps
    httpx's per-request lines out of the output unless at least WARNING.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name, usually the calling module's ``__name__``

    Returns:
        ContextLogger wrapping the standard library logger of that name
    """
    return ContextLogger(logging.getLogger(name))


def set_request_id(request_id: Optional[str] = None) -> str:
    """Tag log lines in the current context with a request ID.

    Args:
        request_id: ID to bind. A short random hex ID is generated when omitted.

    Returns:
        The ID now bound to the context
    """
    if request_id is None:
        request_id = uuid.uuid4().hex[:12]
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """Request ID bound to the current context, if any."""
    return request_id_var.get()


class Timer:
    """Context manager that measures one processing stage in milliseconds.

    Example:
        >>> with Timer("ocr") as timer:
        ...     run_ocr()
        >>> timer.get_elapsed_ms()
    """

    def __init__(self, name: str):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[int] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        if self.start_time is not None:
            self.elapsed_ms = int((time.perf_counter() - self.start_time) * 1000)

    def get_elapsed_ms(self) -> int:
        """Elapsed milliseconds, live while the block is still running."""
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        if self.start_time is not None:
            return int((time.perf_counter() - self.start_time) * 1000)
        return 0
