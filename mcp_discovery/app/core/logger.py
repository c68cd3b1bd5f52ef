from __future__ import annotations

import logging

from colorlog import ColoredFormatter

from mcp_discovery.env import ENV


# Client libraries that log every request/SSE event at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "mcp.client")

_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red,bg_white",
    "CRITICAL": "red,bg_white",
}


def _resolve_log_level(level_name: str) -> int:
    value = (level_name or "INFO").strip().upper()
    return getattr(logging, value, logging.INFO)


def configure_logging(level_name: str | None = None) -> None:
    """Configure root logging once with env-driven log level."""
    level = _resolve_log_level(level_name or ENV.log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Request URLs are only logged at DEBUG.
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    # Leave logging alone when the host (uvicorn, pytest) already configured it.
    if root_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)s:%(name)s:%(message)s",
            log_colors=_LOG_COLORS,
        )
    )
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
