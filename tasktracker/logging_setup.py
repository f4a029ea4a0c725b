import logging
import sys
from pathlib import Path
from typing import Optional

from . import config

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Настраивает корневой логгер. Повторный вызов заменяет обработчики, а не дублирует их."""
    level = (level or config.LOG_LEVEL).upper()
    log_file = log_file or config.LOG_FILE

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Тексты SQL-запросов в лог не пишем
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
