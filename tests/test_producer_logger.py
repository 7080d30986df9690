import json
import logging

from slslog.producer.logger import log_config
from slslog.producer.producer_config import get_default_producer_config


def _close(logger):
    for handler in list(logger.handlers):
        handler.close()


def test_stdout_logfmt_by_default(capsys):
    config = get_default_producer_config()
    logger = log_config(config)
    assert logger.level == logging.INFO
    logger.debug("hidden")
    logger.info("started")
    out = capsys.readouterr().out.strip()
    assert out.startswith("time=")
    assert out.endswith("msg=started")
    assert config.log_max_size == 0


def test_json_and_level(capsys):
    config = get_default_producer_config()
    config.is_json_type = True
    config.allow_log_level = "debug"
    logger = log_config(config)
    logger.debug("detail")
    record = json.loads(capsys.readouterr().out)
    assert record["msg"] == "detail"
    assert record["level"] == "debug"


def test_file_logging_fills_in_limits(tmp_path):
    config = get_default_producer_config()
    config.log_file_name = str(tmp_path / "producer.log")
    logger = log_config(config)
    assert config.log_max_size == 10
    assert config.log_max_backups == 10
    logger.warning("on disk")
    _close(logger)
    assert "on disk" in (tmp_path / "producer.log").read_text()


def test_file_logging_keeps_given_limits(tmp_path):
    config = get_default_producer_config()
    config.log_file_name = str(tmp_path / "producer.log")
    config.log_max_size = 3
    config.log_max_backups = 2
    logger = log_config(config)
    handler = logger.handlers[0]
    assert handler.maxBytes == 3 * 1024 * 1024
    assert handler.max_backups == config.log_max_backups
    _close(logger)