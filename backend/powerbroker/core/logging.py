"""Structured JSON logging, evaluation context, and error-once reporting."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Hashable, Iterator, Optional

from powerbroker.config import settings

domain_var: ContextVar[str] = ContextVar("domain", default="")
tick_var: ContextVar[Optional[int]] = ContextVar("tick", default=None)

_EXTRA_FIELDS = ("network", "broker", "need", "production", "storage_level", "code")

_reported_codes: set[Hashable] = set()


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter with domain/tick injection."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        domain = domain_var.get("")
        if domain:
            log_entry["domain"] = domain
        tick = tick_var.get(None)
        if tick is not None:
            log_entry["tick"] = tick

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Include extra fields
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val if isinstance(val, (int, float, bool)) else str(val)

        return json.dumps(log_entry)


@contextmanager
def evaluation_context(domain: str, tick: int) -> Iterator[None]:
    """Tag every record emitted inside the block with ``domain`` and ``tick``."""
    domain_token = domain_var.set(domain)
    tick_token = tick_var.set(tick)
    try:
        yield
    finally:
        tick_var.reset(tick_token)
        domain_var.reset(domain_token)


def log_error_once(logger: logging.Logger, code: Hashable, message: str, *args: Any) -> bool:
    """Log ``message`` at ERROR the first time ``code`` is seen.

    Returns ``True`` if the message was emitted.
    """
    if code in _reported_codes:
        return False
    _reported_codes.add(code)
    logger.error(message, *args, extra={"code": code})
    return True


def reset_error_once() -> None:
    """Forget which error codes were already reported."""
    _reported_codes.clear()


def setup_logging(json_format: Optional[bool] = None, level: Optional[str] = None) -> None:
    """Configure root logger. Use json_format=True for machine-readable output.

    Arguments left as ``None`` come from ``settings`` (``log_json`` and
    ``log_level``).
    """
    if json_format is None:
        json_format = settings.log_json
    if level is None:
        level = settings.log_level

    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)
