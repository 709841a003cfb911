"""Root logger setup: JSON via structlog, or a plain line format."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import structlog

APP_LOGGER_PREFIX = "agent_chat"
NOISY_LOGGERS = ("httpx", "httpcore")
DEFAULT_LOG_FILE = "~/.local/state/agent-chat/app.log"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)


def app_only_filter(record: logging.LogRecord) -> bool:
    """Keep library chatter (textual, httpx) off the terminal."""
    return record.name.startswith(APP_LOGGER_PREFIX)


def _json_formatter() -> logging.Formatter:
    # structlog loggers and stdlib ``extra={...}`` records share one renderer.
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _TIMESTAMPER,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(
            ensure_ascii=False, separators=(",", ":")
        ),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ExtraAdder(),
            _TIMESTAMPER,
        ],
    )


def _handler(
    handler: logging.Handler, level: int, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _open_log_file(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError:
            logging.getLogger(__name__).warning("cannot restrict permissions on %s", path)
    return handler


def configure_logging(logging_config: dict[str, Any]) -> None:
    """Replace the root handlers according to the ``[logging]`` table."""
    level = getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO)
    if logging_config.get("structured", True):
        formatter = _json_formatter()
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    # The TUI draws over stdout, so only warnings from this package reach stderr.
    console = _handler(logging.StreamHandler(), max(level, logging.WARNING), formatter)
    console.addFilter(app_only_filter)
    root.addHandler(console)

    if logging_config.get("log_to_file", False):
        target = Path(str(logging_config.get("log_file_path", DEFAULT_LOG_FILE))).expanduser()
        root.addHandler(_handler(_open_log_file(target), level, formatter))

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.WARNING)
        noisy.propagate = True
