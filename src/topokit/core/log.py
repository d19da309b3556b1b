from __future__ import annotations

"""
topokit.core.log
================

Structured logging for the library:
- silent by default (NullHandler on the ``topokit`` logger);
- keyword fields go into the record (``log.info("msg", event=..., unit_id=...)``);
- contextvars carry topology/unit/resource ids across calls;
- JSON formatter for machines, compact human formatter for local runs.
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
]

_ROOT_LOGGER: Final[str] = "topokit"
_STDOUT_HANDLER: Final[str] = "_topokit_stdout"
_STDERR_HANDLER: Final[str] = "_topokit_stderr"

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar("topokit_log_ctx", default=None)


def _current() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def bind_context(**fields: Any) -> None:
    """Merge non-None fields into the current log context (until it is reset)."""
    ctx = _current()
    ctx.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(ctx)


@contextmanager
def log_context(**fields: Any):
    """Add fields to the log context for the duration of the block."""
    token = _log_context.set({**_current(), **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _log_context.reset(token)


# LogRecord attributes that are never copied into the JSON envelope.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "asctime",
        "taskName",
    }
)


def _iso_utc(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts/level/logger/message, context, extras, error."""

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": _iso_utc(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        msg = record.getMessage()
        if msg:
            out["message"] = msg
        out.update(_current())
        for k, v in record.__dict__.items():
            if k not in _RECORD_ATTRS and k not in out:
                out[k] = v
        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            out["error"] = {
                "type": exc_type.__name__ if exc_type else "Exception",
                "message": str(exc) if exc else None,
            }
            if self.include_stack:
                out["error"]["stack"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """Single-line formatter with the most useful ids appended."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    _keys: ClassVar[tuple[str, ...]] = ("topology", "unit_id", "resource_id", "event")

    def format(self, record: logging.LogRecord) -> str:
        s = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        fields = {**_current(), **record.__dict__}
        compact = {k: fields[k] for k in self._keys if fields.get(k) is not None}
        if compact:
            s += "  [" + ", ".join(f"{k}={v}" for k, v in compact.items()) + "]"
        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)
        return s


class ContextFilter(logging.Filter):
    """Copy context fields onto the record so handlers can route on them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for k, v in _current().items():
            record.__dict__.setdefault(k, v)
        return True


class _LevelRange(logging.Filter):
    def __init__(self, lo: int = logging.NOTSET, hi: int = logging.CRITICAL) -> None:
        super().__init__()
        self.lo = lo
        self.hi = hi

    def filter(self, record: logging.LogRecord) -> bool:
        return self.lo <= record.levelno <= self.hi


class _KwExtraAdapter(logging.LoggerAdapter):
    """Move unknown keyword arguments into ``extra`` so call sites can pass fields directly."""

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        if not isinstance(extra, dict):
            extra = {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            key = f"field_{k}" if k in _RECORD_ATTRS else k
            extra.setdefault(key, kwargs.pop(k))
        kwargs["extra"] = extra
        return msg, kwargs


_bootstrapped = False


def _bootstrap() -> None:
    global _bootstrapped
    if _bootstrapped:
        return
    lg = logging.getLogger(_ROOT_LOGGER)
    lg.setLevel(logging.INFO)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    if not any(isinstance(f, ContextFilter) for f in lg.filters):
        lg.addFilter(ContextFilter())
    _bootstrapped = True


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Return a ``topokit.<name>`` logger adapter that accepts keyword fields."""
    _bootstrap()
    base = logging.getLogger(_ROOT_LOGGER)
    return _KwExtraAdapter(base.getChild(name) if name else base, {})


def _to_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"invalid log level: {level!r}")
    return resolved


def set_level(level: int | str) -> None:
    logging.getLogger(_ROOT_LOGGER).setLevel(_to_level(level))


def enable_stdout_logging(
    *,
    level: int | str = logging.INFO,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
    route_errors_to_stderr: bool = False,
) -> None:
    """
    Attach stream handlers (tests, local runs, containers).

    ``pretty`` wins over ``json_output``. With ``route_errors_to_stderr`` records
    at ERROR and above go to stderr and the rest to stdout.
    """
    lvl = _to_level(level)
    _bootstrap()
    lg = logging.getLogger(_ROOT_LOGGER)
    disable_stdout_logging()

    fmt: logging.Formatter
    if pretty:
        fmt = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    targets: list[tuple[str, Any, logging.Filter | None]] = []
    if route_errors_to_stderr:
        targets.append((_STDOUT_HANDLER, sys.stdout, _LevelRange(hi=logging.WARNING)))
        targets.append((_STDERR_HANDLER, sys.stderr, _LevelRange(lo=logging.ERROR)))
    else:
        targets.append((_STDOUT_HANDLER, sys.stdout, None))

    for name, stream, flt in targets:
        h = logging.StreamHandler(stream)
        h.set_name(name)
        h.setLevel(lvl)
        if flt is not None:
            h.addFilter(flt)
        h.setFormatter(fmt)
        lg.addHandler(h)
    if lg.level > lvl:
        lg.setLevel(lvl)


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT_LOGGER)
    for h in list(lg.handlers):
        if h.get_name() in (_STDOUT_HANDLER, _STDERR_HANDLER):
            lg.removeHandler(h)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Configure from environment:
      - TOPOKIT_LOG_STDOUT=1   attach a stdout handler
      - TOPOKIT_LOG_LEVEL=...  level name (default INFO)
      - TOPOKIT_LOG_PRETTY=1   human formatter instead of JSON
      - TOPOKIT_LOG_STACK=1    include stacks in JSON errors
    """
    level = os.getenv("TOPOKIT_LOG_LEVEL", "INFO")
    _bootstrap()
    set_level(level)
    if _env_flag("TOPOKIT_LOG_STDOUT"):
        pretty = _env_flag("TOPOKIT_LOG_PRETTY")
        enable_stdout_logging(
            level=level, json_output=not pretty, include_stack=_env_flag("TOPOKIT_LOG_STACK"), pretty=pretty
        )
    else:
        disable_stdout_logging()


_bootstrap()
