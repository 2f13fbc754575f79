"""Wall-clock helpers.

Reservation dates and times are stored as the restaurant's local wall-clock
values, so "now" has to be read in the restaurant timezone rather than UTC.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import get_settings


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current naive local time in the restaurant timezone."""
    zone = ZoneInfo(tz_name or get_settings().restaurant_timezone)
    return datetime.now(zone).replace(tzinfo=None)
