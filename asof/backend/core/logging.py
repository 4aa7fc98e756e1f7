"""
Structured logging for the site, the admin CMS, background tasks and the CLI.

One setup for every entry point: structlog renders through stdlib logging,
so uvicorn, SQLAlchemy and taskiq records share the same formatter as ours.
Settings come from config/settings/logging.yaml (LoggingSchema).

Fields in every JSON record:
    timestamp, level, logger, event, func_name, lineno
    request_id, method, path, frontend   (bound per request by middleware)
    source                               (set explicitly, see VALID_SOURCES)

Call style used across the codebase:

    logger = get_logger(__name__)
    logger.info("Post published", extra={"post_id": post.id})

The `extra` mapping is flattened into the record, so the line above renders
`post_id` as a top-level field. Outside a request, name the origin:

    log_with_source(logger, "tasks", "info", "Scheduled posts published", count=2)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from asof.backend.core.config import find_project_root, load_yaml_config
from asof.backend.core.config_schema import FileHandlerSchema, LoggingSchema

VALID_SOURCES = frozenset({
    "web",
    "api",
    "admin",
    "cli",
    "tasks",
    "seed",
    "internal",
    "unknown",
})
"""Origins a caller may pass to log_with_source."""

QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "multipart": logging.WARNING,
    "PIL": logging.WARNING,
    "taskiq": logging.INFO,
}

_logging_config: LoggingSchema | None = None


def _get_logging_config() -> LoggingSchema:
    """Load logging.yaml once and validate it."""
    global _logging_config
    if _logging_config is None:
        _logging_config = LoggingSchema.model_validate(load_yaml_config("logging.yaml"))
    return _logging_config


def _resolve_log_path(configured_path: str) -> Path:
    return find_project_root() / configured_path


def flatten_extra(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Lift keys of an `extra={...}` argument to the top level of the record.

    Keys already present (event, level, request_id...) are not overwritten.
    """
    extra = event_dict.pop("extra", None)
    if isinstance(extra, dict):
        for key, value in extra.items():
            event_dict.setdefault(key, value)
    elif extra is not None:
        event_dict["extra"] = extra
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        flatten_extra,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderers: list[Processor], pre_chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        foreign_pre_chain=pre_chain,
    )


def _file_handler(config: FileHandlerSchema, formatter: logging.Formatter) -> logging.Handler:
    log_path = _resolve_log_path(config.path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None fall back to logging.yaml. The file handler always
    writes JSON lines; the console uses `format_type` ('json' or 'console').
    Calling this again replaces the previous handlers.
    """
    config = _get_logging_config()
    effective_level = (level or config.level).upper()
    effective_format = format_type or config.format
    console_enabled = config.handlers.console.enabled if enable_console is None else enable_console
    file_enabled = config.handlers.file.enabled if enable_file_logging is None else enable_file_logging

    pre_chain = _shared_processors()
    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = _formatter(
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer(ensure_ascii=False)],
        pre_chain,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, effective_level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        if effective_format == "console":
            console_handler.setFormatter(_formatter([structlog.dev.ConsoleRenderer(colors=True)], pre_chain))
        else:
            console_handler.setFormatter(json_formatter)
        root_logger.addHandler(console_handler)

    if file_enabled:
        root_logger.addHandler(_file_handler(config.handlers.file, json_formatter))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, root_logger.level))


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log with an explicit `source` field.

    For code that runs outside an HTTP request (scheduled tasks, CLI, seed),
    where the middleware has not bound any context.

    Raises:
        AttributeError: If level is not a logger method name
    """
    getattr(logger, level.lower())(message, source=source, **kwargs)
