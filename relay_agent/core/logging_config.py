# relay_agent/core/logging_config.py
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from relay_agent.core.config import Settings

# Resolve log path relative to the project root to avoid surprises with CWD.
PROJECT_ROOT = Path(__file__).resolve().parents[2]

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]  %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def resolve_log_file(log_dir: str) -> Path:
    path = Path(log_dir)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path / "relay_agent.log"


def configure_logging(settings: Settings, level: Optional[str] = None) -> Path:
    """Attach console + rotating file handlers to the root logger once."""
    global _configured

    log_file = resolve_log_file(settings.LOG_DIR)
    if _configured:
        return log_file

    log_level = level or settings.LOG_LEVEL
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=7,
        encoding="utf-8",
        delay=True,
    )
    file_handler.suffix = "%Y-%m-%d"
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True

    root_logger.info(f"✅ Logging initialized. Writing logs to: {log_file}")
    root_logger.info(f"logging start time UTC: {datetime.now(timezone.utc).isoformat()}")
    return log_file
