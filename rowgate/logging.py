"""rowgate — Structured logging configuration.

Every rowgate module logs through ``get_logger(__name__)`` with snake_case
event names (``statement_executed``, ``schema_discovered``, ``row_updated``...)
and key-value context.  Applications opt in to rendering by calling
``configure_logging()`` once, usually with ``Settings.logging``::

    from rowgate import configure_logging, get_settings

    configure_logging(get_settings().logging)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

from rowgate.config import LoggingConfig, get_settings

_ctx_session: ContextVar[str | None] = ContextVar("session", default=None)

_SQL_PREVIEW = 500

# Engine drivers log every round trip at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "mysql.connector")

# Handlers added by the last configure_logging() call.
_installed: list[logging.Handler] = []


def bind_session(session: str | None) -> None:
    """Tag every subsequent log record of this thread/task with *session*."""
    _ctx_session.set(session)


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


def _inject_session(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    if (session := _ctx_session.get()) is not None:
        event_dict.setdefault("session", session)
    return event_dict


def _truncate_sql(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    sql = event_dict.get("sql")
    if isinstance(sql, str) and len(sql) > _SQL_PREVIEW:
        event_dict["sql"] = sql[:_SQL_PREVIEW] + "..."
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        _inject_session,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _truncate_sql,
    ]


def _renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Route structlog through stdlib logging as described by *config*.

    Defaults to ``get_settings().logging``.  Records go to stdout and, when
    ``config.log_file`` is set, to that file as well.  Calling it again
    replaces the handlers installed by the previous call and leaves other
    root handlers alone.
    """
    config = config or get_settings().logging
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config.format),
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for old in _installed:
        root.removeHandler(old)
        old.close()
    _installed[:] = handlers
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(config.level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("schema_discovered", table="usuario", columns=6)
    """
    return structlog.get_logger(name)
