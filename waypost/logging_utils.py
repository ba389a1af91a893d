"""Logging configuration helpers."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    normalized = level.upper()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(_file_handler(log_file))
    logging.basicConfig(
        level=getattr(logging, normalized, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def apply_router_logging(debug: bool, log_file: str | None = None) -> None:
    """Route router logs to ``log_file`` and emit its debug trace when ``debug`` is on."""
    router_logger = logging.getLogger("waypost.router")
    if debug:
        router_logger.setLevel(logging.DEBUG)
    if log_file:
        target = str(Path(log_file).resolve())
        existing = [h for h in router_logger.handlers if isinstance(h, logging.FileHandler) and h.baseFilename == target]
        if not existing:
            router_logger.addHandler(_file_handler(log_file))
