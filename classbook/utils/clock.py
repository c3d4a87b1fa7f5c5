"""Time source helpers; services take a clock so tests can pin 'now'."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

from classbook.utils.config import Settings


Clock = Callable[[], datetime]


def institution_zone(settings: Settings) -> tzinfo:
    return ZoneInfo(settings.timezone)


def system_clock(zone: tzinfo) -> Clock:
    def now() -> datetime:
        return datetime.now(zone)

    return now
