"""Audit trail for ceremony events."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger("quart_passkeys.audit")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


def _format(event: str, meta: dict) -> str:
    if not meta:
        return event
    try:
        suffix = json.dumps(meta, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        suffix = repr(meta)
    return f"{event} {suffix}"


class AuditLog:
    """Fire-and-forget info/error sinks; a failing handler never reaches the caller.

    ``scope`` tags every record so a file handler configured for the same scope
    only receives this log's lines.
    """

    def __init__(self, target: logging.Logger | None = None, scope=None):
        self.logger = target or logger
        self.scope = scope

    def _emit(self, level: int, event: str, meta: dict, exc_info=None):
        try:
            self.logger.log(
                level,
                _format(event, meta),
                exc_info=exc_info,
                extra={"audit_scope": self.scope},
            )
        except Exception:
            logging.getLogger(__name__).debug("audit write failed", exc_info=True)

    def info(self, event: str, **meta):
        self._emit(logging.INFO, event, meta)

    def error(self, event: str, exc_info=None, **meta):
        self._emit(logging.ERROR, event, meta, exc_info=exc_info)


class ScopeFilter(logging.Filter):
    def __init__(self, scope):
        super().__init__()
        self.scope = scope

    def filter(self, record):
        return getattr(record, "audit_scope", None) is self.scope


def configure_file_logging(
    log_dir, filename: str = "server.log", scope=None
) -> logging.Handler:
    """Append audit lines to ``<log_dir>/server.log``.

    With a ``scope``, only records from an :class:`AuditLog` sharing that scope
    are written.
    """
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    target = os.path.abspath(path / filename)

    for existing in logger.handlers:
        if (
            isinstance(existing, logging.FileHandler)
            and existing.baseFilename == target
            and getattr(existing, "audit_scope", None) is scope
        ):
            return existing

    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.audit_scope = scope
    if scope is not None:
        handler.addFilter(ScopeFilter(scope))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler


def remove_file_logging(handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    handler.close()
