"""Logger set-up for the client, configured from arguments or the environment."""

from __future__ import annotations

import datetime
import glob
import gzip
import json
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Mapping

_MEGABYTE = 1024 * 1024
_DEFAULT_MAX_SIZE_MB = 100

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def _level_for(name: str) -> int:
    """Map a level name to a logging level; unknown names mean "info"."""
    return _LEVELS.get(name, logging.INFO)


def _logfmt_key(key: Any) -> str:
    text = str(key)
    return "".join("_" if ch in ' ="' or ord(ch) < 0x20 else ch for ch in text) or "_"


def _logfmt_value(value: Any) -> str:
    text = value if isinstance(value, str) else str(value)
    if text == "" or any(ch in ' ="\\' or ord(ch) < 0x20 or ch == "\x7f" for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


class _KeyValueFormatter(logging.Formatter):
    """Formats records as logfmt lines or JSON objects.

    Extra key/value pairs are taken from ``extra={"fields": {...}}``.
    """

    def __init__(self, as_json: bool, decorate: bool):
        super().__init__()
        self.as_json = as_json
        self.decorate = decorate

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {}
        if self.decorate:
            stamp = datetime.datetime.fromtimestamp(record.created, tz=datetime.timezone.utc)
            fields["time"] = stamp.isoformat(timespec="microseconds").replace("+00:00", "Z")
            fields["caller"] = f"{record.filename}:{record.lineno}"
        fields["level"] = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        fields["msg"] = record.getMessage()
        extra = getattr(record, "fields", None)
        if isinstance(extra, Mapping):
            fields.update(extra)
        if record.exc_info:
            fields["error"] = self.formatException(record.exc_info)
        if self.as_json:
            return json.dumps(fields, default=str, ensure_ascii=False)
        return " ".join(f"{_logfmt_key(key)}={_logfmt_value(value)}" for key, value in fields.items())


class _RotatingLogHandler(RotatingFileHandler):
    """Size-rotated log file; old files get a timestamp suffix and may be gzipped.

    ``max_backups`` of zero keeps every old file.
    """

    def __init__(self, filename: str, max_size_mb: int, max_backups: int, compress: bool):
        super().__init__(
            filename,
            maxBytes=max_size_mb * _MEGABYTE,
            backupCount=0,
            encoding="utf-8",
            delay=True,
        )
        self.max_backups = max_backups
        self.compress = compress

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None  # type: ignore[assignment]
        if os.path.exists(self.baseFilename):
            base, ext = os.path.splitext(self.baseFilename)
            stamp = datetime.datetime.now().strftime("%Y-%m-%dT%H-%M-%S.%f")[:-3]
            backup = f"{base}-{stamp}{ext}"
            os.replace(self.baseFilename, backup)
            if self.compress:
                with open(backup, "rb") as src, gzip.open(backup + ".gz", "wb") as dst:
                    shutil.copyfileobj(src, dst)
                os.remove(backup)
        self._prune()
        self.stream = self._open()

    def _prune(self) -> None:
        if self.max_backups <= 0:
            return
        base, ext = os.path.splitext(self.baseFilename)
        backups = sorted(
            path
            for path in glob.glob(glob.escape(base) + "-*")
            if path.endswith(ext) or path.endswith(ext + ".gz")
        )
        for path in backups[: -self.max_backups]:
            os.remove(path)


def _build_logger(
    name: str, handler: logging.Handler, as_json: bool, level: int, decorate: bool
) -> logging.Logger:
    logger = logging.Logger(name)
    logger.setLevel(level)
    logger.propagate = False
    handler.setFormatter(_KeyValueFormatter(as_json, decorate))
    logger.addHandler(handler)
    return logger


def _stdout_handler() -> logging.Handler:
    return logging.StreamHandler(sys.stdout)


def _flusher(log_file_backup_count: str, log_max_size: str, log_file_name: str) -> _RotatingLogHandler:
    max_size = 10 if log_max_size == "0" else _DEFAULT_MAX_SIZE_MB
    backups = 10 if log_file_backup_count == "0" else 0
    return _RotatingLogHandler(log_file_name, max_size, backups, compress=True)


def generate_inner_logger(
    log_file_name: str,
    is_json_type: str,
    log_max_size: str,
    log_file_backup_count: str,
    allow_log_level: str,
) -> logging.Logger:
    """Build the client's logger.

    With no file name, records go to stdout as logfmt with no level filter and
    no time or caller. The name "stdout" sends records to a rotating file of
    that name, JSON unless ``is_json_type`` is "true". Any other name writes to
    stdout, JSON when ``is_json_type`` is "true".
    """
    if not log_file_name:
        return _build_logger("slslog", _stdout_handler(), False, logging.DEBUG, False)
    if log_file_name == "stdout":
        handler: logging.Handler = _flusher(log_file_backup_count, log_max_size, log_file_name)
        as_json = is_json_type != "true"
    else:
        handler = _stdout_handler()
        as_json = is_json_type == "true"
    return _build_logger("slslog", handler, as_json, _level_for(allow_log_level), True)


def init_default_logger() -> logging.Logger:
    """Build the client's logger from SLS_SDK_* environment variables."""
    return generate_inner_logger(
        os.environ.get("SLS_SDK_LOG_FILE_NAME", ""),
        os.environ.get("SLS_SDK_IS_JSON_TYPE", ""),
        os.environ.get("SLS_SDK_LOG_MAX_SIZE", ""),
        os.environ.get("SLS_SDK_LOG_FILE_BACKUP_COUNT", ""),
        os.environ.get("SLS_SDK_ALLOW_LOG_LEVEL", ""),
    )


LOGGER = init_default_logger()