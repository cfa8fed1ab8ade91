"""Project-wide logging configuration helpers."""

from __future__ import annotations

import logging
import logging.handlers
import os
from collections.abc import Mapping
from logging import Handler, Logger
from pathlib import Path
from typing import Any

__all__ = ["configure_logging", "get_logger"]

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
SYSLOG_FORMAT = "sqlgrate: %(levelname)s %(message)s"
DEBUG_ENV = "SQLGRATE_DEBUG"


def configure_logging(
    settings: Mapping[str, Any] | None = None,
    *,
    log_file: str | Path | None = None,
    force: bool = True,
) -> None:
    """Configure the root logger according to the provided settings mapping.

    The mapping mirrors the ``logging`` section of the configuration:

    .. code-block:: yaml

        logging:
          level: INFO
          file:
            enabled: true
            path: /var/log/sqlgrate.log
          syslog:
            enabled: false
            address: /dev/log
            facility: user

    ``log_file`` takes precedence over ``logging.file`` and enables file logging on its own.
    Setting ``SQLGRATE_DEBUG=true`` in the environment forces the DEBUG level.
    """

    settings = settings or {}
    level = _coerce_level(settings.get("level"))
    if os.environ.get(DEBUG_ENV, "").lower() == "true":
        level = logging.DEBUG

    logging.basicConfig(level=level, format=DEFAULT_FORMAT, force=force)

    handlers: list[Handler] = []
    file_path = _resolve_file_path(settings.get("file"), log_file)
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        handlers.append(file_handler)

    syslog_settings = settings.get("syslog")
    if isinstance(syslog_settings, Mapping) and syslog_settings.get("enabled"):
        syslog_handler = _build_syslog_handler(syslog_settings)
        if syslog_handler is not None:
            handlers.append(syslog_handler)

    root_logger = logging.getLogger()
    for handler in handlers:
        root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> Logger:
    """Return a module logger with sensible defaults."""
    return logging.getLogger(name if name else "sqlgrate")


def _resolve_file_path(file_settings: Any, log_file: str | Path | None) -> Path | None:
    if log_file:
        return Path(log_file).expanduser()
    if isinstance(file_settings, Mapping) and file_settings.get("enabled"):
        path_value = file_settings.get("path")
        if path_value:
            return Path(path_value).expanduser()
    return None


def _build_syslog_handler(settings: Mapping[str, Any]) -> Handler | None:
    raw_address = str(settings.get("address") or "/dev/log")
    facility_name = str(settings.get("facility") or "user").lower()
    facility = logging.handlers.SysLogHandler.facility_names.get(
        facility_name, logging.handlers.SysLogHandler.LOG_USER
    )

    # "host:port" means UDP; anything else is a local socket path.
    address: str | tuple[str, int]
    host, separator, port = raw_address.rpartition(":")
    if separator and host and port.isdigit():
        address = (host, int(port))
    elif Path(raw_address).exists():
        address = raw_address
    else:
        logging.getLogger(__name__).warning("Syslog socket %s not found.", raw_address)
        return None

    try:
        handler = logging.handlers.SysLogHandler(address=address, facility=facility)
    except OSError as exc:
        logging.getLogger(__name__).warning("Syslog unavailable at %s: %s", address, exc)
        return None
    handler.setFormatter(logging.Formatter(SYSLOG_FORMAT))
    return handler


def _coerce_level(level: Any) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level:
        if level.isdigit():
            return int(level)
        try:
            return logging._nameToLevel[level.upper()]
        except KeyError:
            return logging.INFO
    return logging.INFO
