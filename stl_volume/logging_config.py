"""
Structured logging configuration for the stl_volume package.

Provides:
- JSON formatter for machine-readable log files
- Console formatter for human-readable stderr output
- Timing context manager and decorator
- Context fields attached to every record in a scope

Usage:
    from stl_volume.logging_config import setup_logging, get_logger

    setup_logging(level=logging.INFO, json_file="volumes.log.json")

    logger = get_logger(__name__)
    logger.info("Analyzing STL", extra={"file": "part.stl", "triangles": 1024})
"""

import json
import logging
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

F = TypeVar('F', bound=Callable[..., Any])

PACKAGE_LOGGER = "stl_volume"

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_KEYS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message', 'asctime',
})


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_KEYS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...", ...}
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            entry["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in _extra_fields(record).items():
                try:
                    json.dumps(value)
                    entry[key] = value
                except (TypeError, ValueError):
                    entry[key] = str(value)

        return json.dumps(entry, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter.

    Format: [TIME] LEVEL logger: message [extra_key=value ...]
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, show_extra: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.show_extra = show_extra

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, float):
            return f"{value:.4g}"
        if isinstance(value, (list, tuple)) and len(value) > 3:
            return f"[...{len(value)} items]"
        return str(value)

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = f"{record.levelname:8}"
        if self.use_colors and record.levelname in self.COLORS:
            level = f"{self.COLORS[record.levelname]}{level}{self.RESET}"

        name = record.name
        if name.startswith(PACKAGE_LOGGER + "."):
            name = name[len(PACKAGE_LOGGER) + 1:]

        line = f"[{time_str}] {level} {name}: {record.getMessage()}"

        if self.show_extra:
            extras = _extra_fields(record)
            if extras:
                pairs = ", ".join(f"{k}={self._format_value(v)}" for k, v in extras.items())
                line += f" [{pairs}]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def setup_logging(
    level: int = logging.INFO,
    json_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    use_colors: Optional[bool] = None,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Minimum log level
        json_file: Optional path of a JSON-lines log file
        console: Log to stderr
        use_colors: ANSI colors on the console; None means only on a TTY

    Returns:
        The configured ``stl_volume`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        if use_colors is None:
            use_colors = sys.stderr.isatty()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
        logger.addHandler(console_handler)

    if json_file:
        json_handler = logging.FileHandler(Path(json_file), encoding='utf-8')
        json_handler.setLevel(level)
        json_handler.setFormatter(JSONFormatter())
        logger.addHandler(json_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **extra_fields: Any
) -> Iterator[Dict[str, Any]]:
    """Log start, completion and duration of an operation.

    Example:
        with log_timing(logger, "Loading STL", path=stl_path):
            triangles = load_stl(stl_path)

    Yields:
        dict that the caller may fill with fields for the completion record
    """
    timing_info: Dict[str, Any] = {}
    start = time.perf_counter()

    logger.log(level, "Starting: %s", operation, extra={
        "event": "start", "operation": operation, **extra_fields,
    })

    try:
        yield timing_info
    except Exception as exc:
        elapsed = time.perf_counter() - start
        logger.error("Failed: %s (%.3fs) - %s", operation, elapsed, exc, extra={
            "event": "error",
            "operation": operation,
            "elapsed_seconds": elapsed,
            "error": str(exc),
            **extra_fields,
        })
        raise

    elapsed = time.perf_counter() - start
    timing_info['elapsed_seconds'] = elapsed
    logger.log(level, "Completed: %s (%.3fs)", operation, elapsed, extra={
        "event": "complete",
        "operation": operation,
        **extra_fields,
        **timing_info,
    })


def timed(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    operation: Optional[str] = None,
) -> Callable[[F], F]:
    """Decorator form of :func:`log_timing`.

    Example:
        @timed(level=logging.INFO)
        def analyze_file(path):
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_logger = logger or logging.getLogger(func.__module__)
            with log_timing(func_logger, operation or func.__name__, level):
                return func(*args, **kwargs)

        return wrapper  # type: ignore
    return decorator


class _ContextFilter(logging.Filter):
    """Adds fields to records emitted by the thread that installed it."""

    def __init__(self, fields: Dict[str, Any]):
        super().__init__()
        self.fields = fields
        self.thread_id = threading.get_ident()

    def filter(self, record: logging.LogRecord) -> bool:
        if record.thread == self.thread_id:
            for key, value in self.fields.items():
                setattr(record, key, value)
        return True


class LogContext:
    """Attach fields to every package log record emitted inside a ``with`` block.

    Contexts are per thread: records logged by other threads are untouched.

    Example:
        with LogContext(file="part.stl"):
            logger.info("Analyzing")  # record carries file="part.stl"
    """

    _local = threading.local()

    def __init__(self, **fields: Any):
        self.fields = fields
        self._previous: Optional['LogContext'] = None
        self._filter: Optional[_ContextFilter] = None

    @staticmethod
    def _targets() -> list:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        return [package_logger, *package_logger.handlers]

    def __enter__(self) -> 'LogContext':
        self._previous = LogContext.current()
        LogContext._local.current = self
        self._filter = _ContextFilter(self.fields)
        for target in self._targets():
            target.addFilter(self._filter)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._filter:
            for target in self._targets():
                target.removeFilter(self._filter)
            self._filter = None
        LogContext._local.current = self._previous

    @classmethod
    def current(cls) -> Optional['LogContext']:
        """Innermost context active in the calling thread, if any."""
        return getattr(cls._local, 'current', None)


def configure_default_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Console logging at DEBUG (verbose), WARNING (quiet) or INFO."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    return setup_logging(level=level, console=True)
