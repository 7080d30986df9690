"""Logger built from a producer configuration."""

from __future__ import annotations

import logging

from slslog.logger import _RotatingLogHandler, _build_logger, _level_for, _stdout_handler


def log_config(config) -> logging.Logger:
    """Build the producer's logger.

    Without a file name records go to stdout; with one they go to a rotating
    file, and zero size or backup limits in ``config`` are set to 10.
    """
    if not config.log_file_name:
        handler: logging.Handler = _stdout_handler()
    else:
        if config.log_max_size == 0:
            config.log_max_size = 10
        if config.log_max_backups == 0:
            config.log_max_backups = 10
        handler = _RotatingLogHandler(
            config.log_file_name,
            config.log_max_size,
            config.log_max_backups,
            config.log_compress,
        )
    return _build_logger(
        "slslog.producer",
        handler,
        config.is_json_type,
        _level_for(config.allow_log_level),
        True,
    )