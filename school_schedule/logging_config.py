import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from school_schedule.config import settings

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Optional[str] = None, level: Optional[str] = None):
    """
    - Console + rotating file (<LOG_DIR>/app.log)
    - Skipped when the root logger already has handlers (uvicorn, second import)
    """
    level = (level or settings.LOG_LEVEL).upper()

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    path = Path(log_dir or settings.LOG_DIR)
    path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=FORMAT, datefmt=DATEFMT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        path / "app.log",
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    for handler in (console, file_handler):
        handler.setLevel(level)
        root.addHandler(handler)
