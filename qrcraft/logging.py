"""QRCraft structured logging: AUDIT events, JSON/console formatters and call tracing."""

import functools
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone

ROOT_LOGGER = "qrcraft"

# Custom AUDIT level (between WARNING=30 and ERROR=40)
AUDIT = 35
logging.addLevelName(AUDIT, "AUDIT")


def _truncate(value: object, max_len: int = 80) -> str:
    s = str(value)
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _summarize(value: object) -> str:
    """Short description of a return value or argument for trace records."""
    if isinstance(value, (bytes, bytearray)):
        return f"bytes[{len(value)}]"
    if isinstance(value, (str, int, float, bool)) or value is None:
        return _truncate(repr(value), 80)
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}[{len(value)}]"
    if isinstance(value, dict):
        return f"dict[{len(value)} keys]"
    return type(value).__name__


class JsonFormatter(logging.Formatter):
    """One JSON object per line for machine parsing."""

    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "src": record.name,
        }
        event = getattr(record, "event", None)
        if event is not None:
            entry["event"] = event
        elif record.getMessage():
            entry["msg"] = record.getMessage()
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = round(record.duration_ms, 2)
        if getattr(record, "ctx", None):
            entry["ctx"] = record.ctx
        if record.exc_info and record.exc_info[1]:
            entry["traceback"] = traceback.format_exception(*record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable colored console output."""

    COLORS = {
        "DEBUG": "\033[36m",    # cyan
        "INFO": "\033[32m",     # green
        "AUDIT": "\033[35m",    # magenta
        "WARNING": "\033[33m",  # yellow
        "ERROR": "\033[31m",    # red
    }
    RESET = "\033[0m"

    def format(self, record):
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.COLORS.get(record.levelname, "")
        parts = [ts, f"{color}{record.levelname:5s}{self.RESET}", f"[{record.name}]"]

        event = getattr(record, "event", None)
        if event is not None:
            parts.append(event)
        if hasattr(record, "duration_ms"):
            parts.append(f"({record.duration_ms:.1f}ms)")

        ctx = getattr(record, "ctx", None)
        if ctx:
            parts.append(" ".join(f"{k}={_truncate(v)}" for k, v in ctx.items()))
        elif event is None and record.getMessage():
            parts.append(record.getMessage())

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{''.join(traceback.format_exception(*record.exc_info))}")
        return " ".join(parts)


def setup_logging(level: str = "INFO", log_file: str | None = None, json_format: bool = False):
    """Configure the root qrcraft logger.

    Args:
        level: Log level name (DEBUG, INFO, AUDIT, WARNING, ERROR).
        log_file: If set, also write JSON lines to this path.
        json_format: Use JSON on the console as well.
    """
    root = logging.getLogger(ROOT_LOGGER)
    name = level.upper()
    root.setLevel(AUDIT if name == "AUDIT" else getattr(logging, name, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JsonFormatter() if json_format else ConsoleFormatter())
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(JsonFormatter())
        root.addHandler(fh)


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger scoped under the qrcraft namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{module_name}")


def _emit(log: logging.Logger, level: int, event: str, ctx: dict,
          duration_ms: float | None = None, exc_info=None):
    record = log.makeRecord(
        name=log.name, level=level, fn="", lno=0,
        msg="", args=(), exc_info=exc_info,
    )
    record.event = event
    record.ctx = ctx
    if duration_ms is not None:
        record.duration_ms = duration_ms
    log.handle(record)


def audit(event: str, logger: logging.Logger | None = None, **context):
    """Emit an AUDIT-level structured log entry.

    Args:
        event: Machine-readable event tag (e.g. "payload.encoded").
        logger: Logger to use. Defaults to the qrcraft root logger.
        **context: Key-value pairs for the event context.
    """
    log = logger or logging.getLogger(ROOT_LOGGER)
    if log.isEnabledFor(AUDIT):
        _emit(log, AUDIT, event, context)


def trace(func=None, *, logger_name: str | None = None):
    """Decorator that logs function entry/exit with timing.

    - DEBUG on entry with arguments
    - INFO on exit with duration and a result summary
    - ERROR on exception with traceback and duration, then re-raises
    """
    def decorator(fn):
        log = get_logger(logger_name or fn.__module__.replace(f"{ROOT_LOGGER}.", ""))
        fn_name = fn.__name__

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            if log.isEnabledFor(logging.DEBUG):
                safe_args = []
                for a in args:
                    s = repr(a)
                    if len(s) > 100 or "Image" in type(a).__name__:
                        safe_args.append(f"<{type(a).__name__}>")
                    else:
                        safe_args.append(_truncate(s, 80))
                safe_kwargs = {k: _truncate(repr(v), 80) for k, v in kwargs.items()}
                _emit(log, logging.DEBUG, f"{fn_name}.enter", {"args": safe_args, "kwargs": safe_kwargs})

            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception:
                elapsed = (time.perf_counter() - start) * 1000
                _emit(log, logging.ERROR, f"{fn_name}.error", {"function": fn_name},
                      duration_ms=elapsed, exc_info=sys.exc_info())
                raise

            if log.isEnabledFor(logging.INFO):
                elapsed = (time.perf_counter() - start) * 1000
                _emit(log, logging.INFO, f"{fn_name}.done", {"result": _summarize(result)},
                      duration_ms=elapsed)
            return result

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
