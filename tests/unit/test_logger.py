"""
Unit tests for logging setup.
"""

import logging

import pytest

from ascend.utils.logger import AscendLogger, get_logger, setup_logging


@pytest.fixture(autouse=True)
def fresh_logging():
    AscendLogger.reset()
    yield
    AscendLogger.reset()


class TestAscendLogger:
    """Tests for the process-wide logger configuration."""

    def test_child_logger_names(self):
        assert get_logger("ledger").name == "ascend.ledger"
        assert get_logger("storage.sqlite").name == "ascend.storage.sqlite"

    def test_get_logger_sets_up_console_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        get_logger("ledger")

        handlers = logging.getLogger("ascend").handlers
        assert len(handlers) == 1
        assert not (tmp_path / "logs").exists()

    def test_file_logging(self, tmp_path):
        log_dir = tmp_path / "nested" / "logs"
        setup_logging(level=logging.DEBUG, log_dir=str(log_dir))

        get_logger("ledger").debug("bid accepted")
        for handler in logging.getLogger("ascend").handlers:
            handler.flush()

        content = (log_dir / "ascend.log").read_text()
        assert "ascend.ledger: bid accepted" in content

    def test_setup_runs_once_until_reset(self, tmp_path):
        setup_logging(level=logging.WARNING, log_to_file=False)
        setup_logging(level=logging.DEBUG, log_to_file=False)
        assert logging.getLogger("ascend").level == logging.WARNING

        AscendLogger.reset()
        assert logging.getLogger("ascend").handlers == []

        setup_logging(level=logging.DEBUG, log_to_file=False)
        assert logging.getLogger("ascend").level == logging.DEBUG


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
