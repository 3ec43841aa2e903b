"""Structured logging configuration for FOODFLOW.

Provides JSON and text formatters, a session-context filter that
injects the signed-in actor and the active screen into every log
record, and a one-call ``configure_logging`` function driven by
config settings.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from foodflow.config.settings import LoggingSettings
    from foodflow.models.actor import Actor

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        # Context attributes (handled explicitly):
        "actor_id",
        "actor_role",
        "screen",
    }
)

# One client process serves one actor, so the session is process-wide.
# The screen is per thread of control.
_session: dict[str, str | None] = {"actor_id": None, "actor_role": None}
_screen: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "foodflow_screen", default=None
)


def bind_session(actor: Actor | None) -> None:
    """Attach *actor* to every subsequent log record (``None`` clears)."""
    _session["actor_id"] = str(actor.id) if actor is not None else None
    _session["actor_role"] = actor.role.value if actor is not None else None


@contextlib.contextmanager
def screen_context(name: str) -> Iterator[None]:
    """Tag log records emitted inside the block with screen *name*."""
    token = _screen.set(name)
    try:
        yield
    finally:
        _screen.reset(token)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for attr in ("actor_id", "actor_role", "screen"):
            value = getattr(record, attr, None)
            if value is not None:
                data[attr] = value

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(actor_role)s:%(screen)s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class SessionContextFilter(logging.Filter):
    """Inject ``actor_id``, ``actor_role`` and ``screen`` into every record.

    Values come from :func:`bind_session` and :func:`screen_context`;
    unset values fall back to ``"-"`` so the text format always renders.
    """

    CONTEXT_ATTRS = frozenset({"actor_id", "actor_role", "screen"})

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "actor_id"):
            record.actor_id = _session["actor_id"] or "-"  # type: ignore[attr-defined]
        if not hasattr(record, "actor_role"):
            record.actor_role = _session["actor_role"] or "-"  # type: ignore[attr-defined]
        if not hasattr(record, "screen"):
            record.screen = _screen.get() or "-"  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``foodflow`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.
    Sets up an optional audit file if ``settings.audit.file`` is set.

    Returns the root ``foodflow`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("foodflow")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = SessionContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    audit = logging.getLogger("foodflow.audit")
    audit.handlers.clear()
    if settings.audit.enabled:
        audit.setLevel(logging.DEBUG if level <= logging.DEBUG else logging.INFO)

        if settings.audit.file:
            try:
                from logging.handlers import RotatingFileHandler

                fh = RotatingFileHandler(
                    settings.audit.file,
                    maxBytes=settings.audit.max_file_size_bytes,
                    backupCount=settings.audit.backup_count,
                )
                # Audit logs are always structured JSON
                fh.setFormatter(StructuredFormatter())
                fh.addFilter(ctx_filter)
                audit.addHandler(fh)
            except OSError as exc:
                root.warning("Could not open audit log file %s: %s", settings.audit.file, exc)
    else:
        audit.setLevel(logging.CRITICAL + 1)

    for lib in ("psycopg", "psycopg.pool", "pypgkit"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
