"""JSON logging to stdout or syslog, tagged with the service name."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone

LOGGER_NAME = "scenariomgr"

_PARSED_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


def _level_name(levelno: int) -> str:
    if levelno <= logging.DEBUG:
        return "debug"
    if levelno <= logging.INFO:
        return "info"
    if levelno <= logging.WARNING:
        return "warning"
    if levelno <= logging.ERROR:
        return "error"
    return "fatal"


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object with sorted keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": _level_name(record.levelno),
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created, timezone.utc)
            .astimezone()
            .isoformat(timespec="seconds"),
        }
        service = getattr(record, "Service", None)
        if service is not None:
            entry["Service"] = service
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, sort_keys=True)


class ServiceFieldFilter(logging.Filter):
    """Attach the service name to every record as the ``Service`` field."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.Service = self.service_name
        return True


class _SyslogHandler(logging.handlers.SysLogHandler):
    """Syslog handler that falls back to a configured priority."""

    def __init__(self, default_priority: int) -> None:
        super().__init__()
        self.default_priority = default_priority

    def mapPriority(self, levelName: str):  # noqa: N802 - overrides the stdlib name
        return self.priority_map.get(levelName, self.default_priority)


def syslog_level(level: str) -> int:
    """Map a level name to a syslog priority."""
    handler = logging.handlers.SysLogHandler
    if level == "debug":
        return handler.LOG_DEBUG
    if level in ("warning", "warn"):
        return handler.LOG_WARNING
    if level == "error":
        return handler.LOG_ERR
    if level == "fatal":
        return handler.LOG_CRIT
    return handler.LOG_INFO


def start_logger(service_name: str, use_syslog: bool, log_level: str) -> logging.Logger:
    """Configure and return the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.propagate = False

    handler: logging.Handler
    if use_syslog:
        handler = _SyslogHandler(syslog_level(log_level))
        logger.setLevel(logging.INFO)
    else:
        handler = logging.StreamHandler(sys.stdout)
        logger.setLevel(_PARSED_LEVELS.get(log_level.lower(), logging.INFO))

    handler.setFormatter(JsonFormatter())
    handler.addFilter(ServiceFieldFilter(service_name))
    logger.addHandler(handler)
    return logger