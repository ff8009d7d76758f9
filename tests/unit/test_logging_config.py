"""Tests for the console logging setup."""

import logging

import pytest

import logging_config
from pool_arbitrage.utils import get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    saved = {
        name: (logger.level, list(logger.handlers))
        for name, logger in logging.root.manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, logger in list(logging.root.manager.loggerDict.items()):
        if isinstance(logger, logging.Logger):
            logger_level, logger_handlers = saved.get(name, (logging.NOTSET, []))
            logger.setLevel(logger_level)
            logger.handlers[:] = logger_handlers


def test_setup_installs_single_stdout_handler():
    logging_config.setup()
    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.INFO
    assert logging.getLogger("web3").level == logging.WARNING


def test_setup_minimal():
    logging_config.setup_minimal()
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("pool_arbitrage").level == logging.WARNING


def test_setup_debug_reaches_module_loggers():
    module_logger = get_logger("pool_arbitrage.tests.sample")
    assert module_logger.level == logging.INFO

    logging_config.setup_debug()

    assert module_logger.level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.DEBUG


def test_module_lines_printed_once(capsys):
    module_logger = get_logger("pool_arbitrage.tests.once")
    assert len(module_logger.handlers) == 1

    logging_config.setup()
    module_logger.info("pools fetched")

    assert module_logger.handlers == []
    captured = capsys.readouterr()
    assert captured.out.count("pools fetched") == 1
    assert "pools fetched" not in captured.err
