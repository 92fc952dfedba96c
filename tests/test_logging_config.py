import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from school_schedule.config import settings
from school_schedule.logging_config import setup_logging


@pytest.fixture
def bare_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        for h in root.handlers:
            h.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_console_and_rotating_file(tmp_path, bare_root_logger):
    setup_logging(log_dir=str(tmp_path / "logs"), level="debug")

    assert bare_root_logger.level == logging.DEBUG
    assert len(bare_root_logger.handlers) == 2
    files = [h for h in bare_root_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(files) == 1
    assert Path(files[0].baseFilename) == tmp_path / "logs" / "app.log"
    assert files[0].maxBytes == settings.LOG_MAX_BYTES
    assert files[0].backupCount == settings.LOG_BACKUP_COUNT


def test_setup_logging_runs_once(tmp_path, bare_root_logger):
    setup_logging(log_dir=str(tmp_path))
    setup_logging(log_dir=str(tmp_path))

    assert len(bare_root_logger.handlers) == 2
