"""Observability utilities for zettelvc.

Provides persistent disk logging with rotation, in-process timing metrics
and operation tracing. The interactive app logs to file only; writing to
the console would paint over the full-screen UI.
"""
import functools
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "zettelvc"
LOG_FILE_NAME = "zettelvc.log"

# ISO 8601 timestamps; one line per record so the file greps well
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(
    log_dir: Union[str, Path],
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> Path:
    """Send the ``zettelvc`` logger hierarchy to a rotating file.

    Only a file handler is installed: anything written to the terminal
    would land on top of the full-screen app. Calling this again swaps the
    previous file handler for a new one.

    Returns:
        Path to the log file
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            root_logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(file_handler)

    root_logger.info(f"Logging to {log_file} (rotating at {max_bytes} bytes, {backup_count} kept)")
    return log_file


@dataclass
class OperationMetrics:
    """Running totals for one traced operation (create, add_link, load...)."""

    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: Optional[float] = None
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None

    def add(self, duration_ms: float, error: Optional[str]) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        if self.min_duration_ms is None or duration_ms < self.min_duration_ms:
            self.min_duration_ms = duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if error is None:
            self.success_count += 1
        else:
            self.error_count += 1
            self.last_error = error


class MetricsCollector:
    """In-process counters for the note operations of one session.

    Nothing is persisted; the Statistics screen and the exit log line read
    the summary.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Record one finished operation; ``error`` is kept only on failure."""
        with self._lock:
            self._metrics[operation].add(duration_ms, None if success else (error or ""))

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation, keyed by name."""
        with self._lock:
            return {
                op: {
                    "count": m.count,
                    "success_count": m.success_count,
                    "error_count": m.error_count,
                    "avg_duration_ms": round(m.total_duration_ms / m.count, 2),
                    "min_duration_ms": round(m.min_duration_ms or 0.0, 2),
                    "max_duration_ms": round(m.max_duration_ms, 2),
                    "last_error": m.last_error,
                }
                for op, m in self._metrics.items()
            }

    def get_summary(self) -> Dict[str, Any]:
        """Totals across all operations."""
        with self._lock:
            return {
                "total_operations": sum(m.count for m in self._metrics.values()),
                "total_errors": sum(m.error_count for m in self._metrics.values()),
                "operations_tracked": sorted(self._metrics),
            }

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Shared by every traced operation of the process
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a block, count it in ``metrics`` and log it at DEBUG.

    The yielded dict collects result details for the END line. Exceptions
    are counted as failures and re-raised unchanged.

    Example:
        with timed_operation("load") as op:
            report = load_everything()
            op["result_count"] = report.loaded
    """
    correlation_id = uuid.uuid4().hex[:8]
    started = time.perf_counter()
    result_info: Dict[str, Any] = {}

    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg: Optional[str] = None
    try:
        yield result_info
    except Exception as e:
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(operation, duration_ms, error_msg is None, error_msg)

        outcome = "OK" if error_msg is None else f"ERROR: {error_msg}"
        details = ", ".join(f"{k}={v}" for k, v in result_info.items())
        logger.debug(
            f"[{correlation_id}] END {operation} ({duration_ms:.2f}ms) [{outcome}] {details}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run a service method inside :func:`timed_operation`.

    The first string argument after ``self`` (a note id or a title) is
    logged as the subject; a returned note is logged by id.

    Example:
        @traced("create")
        def create(self, title: str, body: str) -> Note:
            ...
    """

    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            if "note_id" in kwargs:
                context["subject"] = kwargs["note_id"]
            elif len(args) > 1 and isinstance(args[1], str):
                context["subject"] = args[1][:50]

            with timed_operation(op_name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple, dict)):
                    op["result_count"] = len(result)
                elif getattr(result, "id", None) is not None:
                    op["note_id"] = result.id
                return result

        return wrapper  # type: ignore

    return decorator
