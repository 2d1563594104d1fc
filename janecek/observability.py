"""
Structured logging for the voting core.

Every log line is one JSON object carrying the invocation id of the
instruction being processed, the layer that emitted it and arbitrary
structured context:

    {"timestamp": "...", "level": "info", "logger": "janecek.processor.dispatch",
     "message": "Instruction: VotePositive", "invocation_id": "inv-3f9a...",
     "layer": "processor", "operation": "dispatch", "context": {...}}

The processor opens an invocation scope per instruction; every logger used
while it runs picks up the id from a context variable.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

invocation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "invocation_id", default=""
)

ROOT_LOGGER = "janecek"


class ProgramLayer(Enum):
    """Layers of the voting core, used to categorize log events."""
    ADDRESS = "address"
    CODEC = "codec"
    VALIDATOR = "validator"
    CAMPAIGN = "campaign"
    REGISTRY = "registry"
    VOTE = "vote"
    PROCESSOR = "processor"
    STORAGE = "storage"
    RUNTIME = "runtime"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    invocation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON, one event per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def build_event(self, record: logging.LogRecord) -> LogEvent:
        event = LogEvent(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname.lower(),
            logger=record.name,
            message=record.getMessage(),
            invocation_id=invocation_id_var.get(),
            layer=getattr(record, "layer", ""),
            operation=getattr(record, "operation", ""),
            duration_ms=getattr(record, "duration_ms", None),
            error_code=getattr(record, "error_code", ""),
            context=getattr(record, "context", {}),
        )
        if record.exc_info:
            event.exception = "".join(traceback.format_exception(*record.exc_info))
        return event

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.build_event(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextHandler(StructuredHandler):
    """Human-readable variant: `level [layer] message key=value ...`."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = self.build_event(record)
            parts = [f"{event.level.upper():8}", f"[{event.layer or '-'}]", event.message]
            if event.invocation_id:
                parts.append(f"invocation_id={event.invocation_id}")
            if event.error_code:
                parts.append(f"error_code={event.error_code}")
            parts.extend(f"{k}={v}" for k, v in event.context.items())
            self.stream.write(" ".join(parts) + "\n")
            if event.exception:
                self.stream.write(event.exception)
            self.stream.flush()
        except Exception:
            self.handleError(record)


class ProgramLogger:
    """
    Structured logger for one layer of the core.

    Context keyword arguments end up in the event's `context` object.
    """

    def __init__(self, name: str, layer: ProgramLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"{ROOT_LOGGER}.{layer.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.INFO if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def get_logger(name: str, layer: ProgramLayer) -> ProgramLogger:
    """Get a logger for a component of the core."""
    return ProgramLogger(name, layer)


def configure_logging(
    level: str = "info",
    fmt: str = "json",
    stream: Any = None,
) -> logging.Handler:
    """
    Install a single structured (or text) handler on the package root logger.

    Calling again replaces the previous handler.
    """
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if isinstance(handler, StructuredHandler):
            root.removeHandler(handler)
    handler: StructuredHandler = TextHandler(stream) if fmt == "text" else StructuredHandler(stream)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))
    root.propagate = False
    return handler


# =============================================================================
# INVOCATION SCOPE
# =============================================================================

def generate_invocation_id() -> str:
    return f"inv-{uuid.uuid4().hex[:12]}"


def get_invocation_id() -> str:
    return invocation_id_var.get()


@contextmanager
def invocation_scope(invocation_id: Optional[str] = None) -> Iterator[str]:
    """Bind an invocation id for every log event emitted inside the block."""
    token = invocation_id_var.set(invocation_id or generate_invocation_id())
    try:
        yield invocation_id_var.get()
    finally:
        invocation_id_var.reset(token)


T = TypeVar("T")


def timed_operation(
    logger: ProgramLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
