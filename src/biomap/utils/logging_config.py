# src/biomap/utils/logging_config.py
"""
Centralized logging configuration for BioMap.

Usage:
    from biomap.utils.logging_config import Logger, LogFiles, set_trace_id

    set_trace_id()  # once per request
    Logger.info("Research map built", file=LogFiles.RESEARCH)
    Logger.error("Chat failed", file=LogFiles.ERROR)

Module code keeps using ``logging.getLogger(__name__)``; ``configure_logging``
attaches a console handler whose records carry the current trace id too.

Configuration via environment variables:
    BIOMAP_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    BIOMAP_LOG_DIR: Base directory for log files (default: logs/)
    BIOMAP_LOG_MAX_BYTES: Max size per log file in bytes (default: 10MB)
    BIOMAP_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
"""

from __future__ import annotations

import logging
import os
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import yaml

_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "biomap.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(trace_id)s] %(filename)s:%(lineno)d - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_CONFIG_FILE = Path(__file__).parent / "log_config.yaml"

_DEFAULT_FILES = {
    "api": "api/api.log",
    "research": "research/research.log",
    "chat": "chat/chat.log",
    "notes": "notes/notes.log",
    "error": "errors/error.log",
}


class _LogFilesMeta(type):
    """Allows ``LogFiles.RESEARCH`` style attribute access."""

    def __getattr__(cls, name: str) -> str:
        files = cls._load()
        key = name.lower()
        if key in files:
            return files[key]
        raise AttributeError(f"Log file '{name}' not found in config")


class LogFiles(metaclass=_LogFilesMeta):
    """
    Log file paths from ``log_config.yaml`` (``files`` section), relative to
    the log directory. Unknown names fall back to ``<name>/<name>.log``.
    """

    _files: Optional[Dict[str, str]] = None

    @classmethod
    def _load(cls) -> Dict[str, str]:
        if cls._files is not None:
            return cls._files

        files = dict(_DEFAULT_FILES)
        if LOG_CONFIG_FILE.exists():
            with open(LOG_CONFIG_FILE, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
            if isinstance(config.get("files"), dict):
                files.update({str(k).lower(): str(v) for k, v in config["files"].items()})
        cls._files = files
        return files

    @classmethod
    def get(cls, name: str) -> str:
        key = (name or "").lower()
        return cls._load().get(key, f"{key}/{key}.log")


class TraceIdFilter(logging.Filter):
    """Stamps every record with the trace id of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get() or "-"
        return True


def _get_config() -> dict:
    return {
        "level": os.environ.get("BIOMAP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        "base_dir": os.environ.get("BIOMAP_LOG_DIR", DEFAULT_LOG_DIR),
        "max_bytes": int(os.environ.get("BIOMAP_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(os.environ.get("BIOMAP_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)),
    }


_config: dict = {}
_file_loggers: Dict[str, logging.Logger] = {}


def _file_logger(file: Optional[str]) -> logging.Logger:
    """One non-propagating logger per log file, with a rotating handler."""
    if not _config:
        _config.update(_get_config())

    relative = file or DEFAULT_LOG_FILE
    if relative in _file_loggers:
        return _file_loggers[relative]

    path = Path(_config["base_dir"]) / relative
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=_config["max_bytes"],
        backupCount=_config["backup_count"],
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
    handler.addFilter(TraceIdFilter())

    name = "biomap.files." + relative.replace("/", ".").replace("\\", ".")
    file_logger = logging.getLogger(name)
    file_logger.setLevel(_config["level"])
    file_logger.propagate = False
    file_logger.addHandler(handler)
    _file_loggers[relative] = file_logger
    return file_logger


class Logger:
    """
    Static logger writing audit lines to named log files.

    ``stacklevel=2`` makes the record point at the caller, not this class.
    """

    @staticmethod
    def init(level: Optional[str] = None, base_dir: Optional[str] = None) -> None:
        _config.clear()
        _config.update(_get_config())
        if level:
            _config["level"] = level.upper()
        if base_dir:
            _config["base_dir"] = base_dir
        Logger.close()

    @staticmethod
    def debug(message: str, file: Optional[str] = None) -> None:
        _file_logger(file).debug(message, stacklevel=2)

    @staticmethod
    def info(message: str, file: Optional[str] = None) -> None:
        _file_logger(file).info(message, stacklevel=2)

    @staticmethod
    def warning(message: str, file: Optional[str] = None) -> None:
        _file_logger(file).warning(message, stacklevel=2)

    @staticmethod
    def error(message: str, file: Optional[str] = None) -> None:
        _file_logger(file).error(message, stacklevel=2)

    @staticmethod
    def close() -> None:
        for file_logger in _file_loggers.values():
            for handler in list(file_logger.handlers):
                handler.close()
                file_logger.removeHandler(handler)
        _file_loggers.clear()


def configure_logging(level: Optional[str] = None) -> None:
    """Console output for module loggers under ``biomap``."""
    root = logging.getLogger("biomap")
    root.setLevel((level or _get_config()["level"]).upper())
    if any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
    handler.addFilter(TraceIdFilter())
    root.addHandler(handler)


# ============================================================================
# Trace ID Management
# ============================================================================

def generate_trace_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Set (or generate) the trace id for the current request context."""
    tid = trace_id or generate_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def clear_trace_id() -> None:
    _trace_id_var.set(None)
