"""Tests for logging setup."""

import logging

from rich.logging import RichHandler

from lifetracker.log import LOGGER_NAME, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler(self):
        logger = setup_logging("info")
        assert logger.name == LOGGER_NAME
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert isinstance(handler, RichHandler)
        assert handler.level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self):
        logger = setup_logging("chatty")
        assert logger.handlers[0].level == logging.WARNING

    def test_repeat_calls_do_not_stack_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "lifetracker.log"
        logger = setup_logging(logging.WARNING, log_file)
        assert len(logger.handlers) == 2

        logging.getLogger("lifetracker.goals.manager").info("Goal g-1 achieved")
        for handler in logger.handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "INFO" in content
        assert "lifetracker.goals.manager" in content
        assert "Goal g-1 achieved" in content

        for handler in logger.handlers:
            handler.close()
