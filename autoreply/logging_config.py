"""Logging setup for the auto-reply service.

Every line goes to the console and is appended to a log file, timestamped in
the configured timezone instead of the host's local time.
"""

import logging
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from .config import Settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders %(asctime)s in a fixed timezone"""

    def __init__(self, fmt: str, datefmt: str, tz: ZoneInfo):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.tz = tz

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=self.tz)
        return created.strftime(datefmt or DATE_FORMAT)


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the root logger with console and file output.

    Args:
        settings: Loaded service settings (log file, level, timezone)

    Returns:
        The package logger
    """
    formatter = TimezoneFormatter(LOG_FORMAT, DATE_FORMAT, settings.tz)

    log_file = Path(settings.log_file)
    if log_file.parent != Path("."):
        log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(log_file, mode="a", encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )

    return logging.getLogger("autoreply")


def log_startup_banner(settings: Settings, logger: logging.Logger) -> None:
    """Emit the fixed startup banner"""
    logger.info("===========================================")
    logger.info(f"{settings.service_name} Email Auto-Reply Service Started")
    logger.info("===========================================")
    logger.info(f"Mode: {'DEBUG' if settings.debug_mode else 'PRODUCTION'}")
    logger.info(f"Check interval: {settings.check_interval} seconds")
    logger.info(f"Timezone: {settings.timezone}")
    logger.info(f"Active hours: {settings.hour_start:02d}:00 - {settings.hour_end:02d}:00")
    if settings.hour_start == settings.hour_end:
        logger.warning("HOUR_START equals HOUR_END: the active window is empty, no replies will be sent")
    logger.info("===========================================")
