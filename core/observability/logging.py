"""
Structured logging for reconciliation runs.

Every log line carries the correlation fields in effect when it is emitted,
so all output for one order can be found from its code in the run summary:

- run_id: one reconciliation batch run
- order_code: the purchase-order transaction code being processed
- row_number: row of that code in the tracking sheet
- order_id: internal id of the order in the order system
- environment: production / sandbox
- stage: per-order state (fetched, classified, written, ...)

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(run_id="run-1a2b", order_code="PO1042", row_number=7):
        logger.info("Classifying expense lines")
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

PACKAGE_LOGGERS = ("core", "connectors", "reference_cache", "reconciliation")


@dataclass(frozen=True)
class CorrelationContext:
    """Correlation fields attached to every log line."""
    run_id: Optional[str] = None
    order_code: Optional[str] = None
    row_number: Optional[int] = None
    order_id: Optional[str] = None
    environment: Optional[str] = None
    stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Fields that are set, for structured output."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def updated(self, **fields) -> "CorrelationContext":
        """New context with the given non-None fields overriding this one."""
        return replace(self, **{k: v for k, v in fields.items() if v is not None})

    def label(self) -> str:
        """Short run/order/row tag for human-readable lines."""
        parts = []
        if self.run_id:
            parts.append(self.run_id[:12])
        if self.order_code:
            parts.append(self.order_code)
        if self.row_number is not None:
            parts.append(f"row:{self.row_number}")
        return "/".join(parts) or "-"


_current_context: ContextVar[CorrelationContext] = ContextVar(
    "reconcile_correlation", default=CorrelationContext()
)


def get_correlation_context() -> CorrelationContext:
    return _current_context.get()


@contextmanager
def with_correlation(**fields):
    """Add correlation fields for the duration of the block.

    Nested blocks extend the outer context; the outer values come back
    when the block exits. Each asyncio task sees its own context.
    """
    ctx = get_correlation_context().updated(**fields)
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================

class _CorrelatedFormatter(logging.Formatter):

    @staticmethod
    def _timestamp(record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)

    @staticmethod
    def _extra(record: logging.LogRecord) -> Dict[str, Any]:
        return getattr(record, "extra_fields", None) or {}


class StructuredFormatter(_CorrelatedFormatter):
    """
    One JSON object per line:

    {"timestamp": "2025-01-09T12:00:00.000Z", "level": "INFO",
     "logger": "reconciliation.stages", "message": "Order PO1042 updated",
     "run_id": "run-1a2b", "order_code": "PO1042", "row_number": 7,
     "stage": "written", "converted": 2}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self._timestamp(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(get_correlation_context().to_dict())
        entry.update(self._extra(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(_CorrelatedFormatter):
    """
    2025-01-09 12:00:00 [INFO ] reconciliation.stages [run-1a2b/PO1042/row:7]: Order PO1042 updated
    """

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self._timestamp(record):%Y-%m-%d %H:%M:%S} [{record.levelname:5}] "
            f"{record.name} [{get_correlation_context().label()}]: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Logger wrapper
# =============================================================================

class CorrelatedLogger:
    """
    Thin wrapper over a stdlib logger that accepts ``extra_fields=`` on
    every call. The fields land on the record as ``record.extra_fields``
    and are merged into structured output.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, msg: str, *args, extra_fields: Optional[Dict[str, Any]] = None, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, extra={"extra_fields": extra_fields or {}}, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.log(logging.ERROR, msg, *args, **kwargs)


# =============================================================================
# Setup
# =============================================================================

_loggers: Dict[str, CorrelatedLogger] = {}
_handler: Optional[logging.Handler] = None


def configure_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """
    Install the console handler on the root logger.

    Calling again replaces the handler installed by the previous call, so a
    script can reconfigure after modules have already created loggers.

    Args:
        level: Logging level for the package loggers and the handler
        json_format: JSON lines instead of human-readable lines
    """
    global _handler

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setLevel(level)
    _handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())
    root.addHandler(_handler)
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)

    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> CorrelatedLogger:
    """Correlated logger for ``name`` (typically ``__name__``)."""
    if _handler is None:
        configure_logging()
    if name not in _loggers:
        _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return _loggers[name]


def log_stage(stage: str, message: str, **fields):
    """Log one per-order state transition, tagged with the stage."""
    with with_correlation(stage=stage):
        get_logger("reconciliation.stages").info(message, extra_fields=fields, stacklevel=4)


def log_run_summary(counts: Dict[str, Any]):
    get_logger("reconciliation.summary").info("Run complete", extra_fields=counts)
