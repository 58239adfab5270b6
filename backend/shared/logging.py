"""structlog setup shared by every entry point.

Output goes through stdlib logging so uvicorn, Starlette and our own
structured events end up in the same handlers.

LOG_FORMAT selects the renderer ("json", or "console"/unset for humans).
LOG_LEVEL is one of DEBUG, INFO (default), WARNING, ERROR, CRITICAL.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

_LOG_FORMATS = ("json", "console", "")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FILE_NAME = "%Y-%m-%d_%H-%M-%S.log"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log enum members (denial reasons, error codes) as their plain value."""
    enum_keys = [key for key, value in event_dict.items() if isinstance(value, Enum)]
    for key in enum_keys:
        event_dict[key] = event_dict[key].value
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.environ.get(name, default)
    value = value.upper() if name == "LOG_LEVEL" else value.lower()
    if value not in allowed:
        choices = ", ".join(repr(choice) for choice in allowed if choice)
        msg = f"Invalid {name}={value!r}. Expected one of {choices}."
        raise ValueError(msg)
    return value


def resolve_json_mode() -> bool:
    return _env_choice("LOG_FORMAT", "", _LOG_FORMATS) == "json"


def resolve_log_level() -> int:
    return logging.getLevelNamesMapping()[_env_choice("LOG_LEVEL", "INFO", _LOG_LEVELS)]


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _formatter(*, json_mode: bool, colors: bool = False) -> logging.Formatter:
    if json_mode:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Install stdout (and optionally file) handlers on the root logger.

    Safe to call more than once: existing root handlers are replaced.
    With `log_dir`, a file named after the start time is opened there
    and its path returned. Under pytest no file is ever created.
    """
    json_mode = resolve_json_mode()
    level = resolve_log_level() if level is None else level
    _configure_structlog()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / datetime.now(tz=UTC).strftime(_LOG_FILE_NAME)
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(_formatter(json_mode=json_mode))
    root.addHandler(file_handler)
    return log_file
