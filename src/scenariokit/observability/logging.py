"""Structured logging for ScenarioKit.

Events are structlog event dicts rendered twice through
``structlog.stdlib.ProcessorFormatter``:

- console: a ``RichHandler`` on stderr showing ``event key=value`` lines,
  WARNING by default, INFO with ``-v`` and DEBUG with ``-vv``;
- file (``--log``): every event as one JSON object per line in
  ``{log_dir}/scenariokit.jsonl``.

Editor and ingestion sessions attach ``game_id`` / ``job_id`` with
``log_context()`` so that every request, reconciliation and poll logged
inside the session carries them.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from structlog.typing import EventDict, Processor, WrappedLogger

LOG_FILENAME = "scenariokit.jsonl"

# Transport libraries log every connection at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")

_configured = False
_file_handler: logging.FileHandler | None = None


def _drop_console_keys(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    # RichHandler prints its own time and level columns
    event_dict.pop("timestamp", None)
    event_dict.pop("level", None)
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _console_handler(verbosity: int) -> logging.Handler:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    handler = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=verbosity >= 1,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _drop_console_keys,
                structlog.processors.format_exc_info,
                structlog.processors.KeyValueRenderer(
                    key_order=["event"], drop_missing=True, sort_keys=True
                ),
            ],
        )
    )
    return handler


def _jsonl_handler(log_dir: Path) -> logging.FileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILENAME, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(default=str),
            ],
        )
    )
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Install the console handler and, optionally, the JSONL file handler.

    Safe to call again: the previous file handler is closed and replaced.

    Args:
        verbosity: 0 for WARNING, 1 for INFO, 2 or more for DEBUG.
        log_to_file: Also write every event to ``{log_dir}/scenariokit.jsonl``.
        log_dir: Directory for the JSONL file.

    Raises:
        ValueError: If *log_to_file* is set without *log_dir*.
    """
    global _configured, _file_handler

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    handlers = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _file_handler = _jsonl_handler(log_dir)
        handlers.append(_file_handler)

    # The file handler wants everything; the console handler filters itself
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring defaults on first use.

    Args:
        name: Logger name, normally ``__name__``.
    """
    if not _configured:
        configure_logging()
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach *fields* to every event logged inside the block.

    ``None`` values are skipped so callers can pass optional ids directly.
    """
    bound = {key: value for key, value in fields.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def close_file_logging() -> None:
    """Flush and detach the JSONL file handler, if any."""
    global _file_handler
    if _file_handler is None:
        return
    logging.getLogger().removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None
