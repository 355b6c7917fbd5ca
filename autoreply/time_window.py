"""
Active-hours gate
"""
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from .config import Settings

logger = logging.getLogger(__name__)


def in_active_window(hour: int, start: int, end: int) -> bool:
    """
    Check whether an hour lies in the half-open window [start, end) modulo 24.

    A window with start > end wraps midnight (17 -> 8 covers 17:00-07:59).
    start == end is an empty window.
    """
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def now_in_timezone(tz_name: str) -> datetime:
    """Current instant in the given IANA timezone"""
    return datetime.now(ZoneInfo(tz_name))


def within_active_hours(now: datetime, settings: Settings) -> bool:
    """Gate decision without logging; debug mode always passes"""
    if settings.debug_mode:
        return True

    if now.tzinfo is not None:
        now = now.astimezone(settings.tz)
    return in_active_window(now.hour, settings.hour_start, settings.hour_end)


def is_active(now: datetime, settings: Settings) -> bool:
    """
    Decide whether the service may act at `now`.

    Debug mode bypasses the window entirely.
    """
    if settings.debug_mode:
        logger.info("[DEBUG] Auto-reply running (active-hours check bypassed)")
    return within_active_hours(now, settings)
