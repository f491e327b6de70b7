# triage_ai/backend/app/reply/sla.py

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

DEFAULT_SLA_HOURS = 24
# Largest hour count accepted from API callers
MAX_SLA_HOURS = 24 * 365

# Monday=0 ... Saturday=5, Sunday=6
WEEKEND = {5, 6}
# Any 168 consecutive hours contain exactly this many weekday hours
BUSINESS_HOURS_PER_WEEK = 24 * 5


def add_business_hours(start: datetime, hours: Optional[float] = DEFAULT_SLA_HOURS) -> datetime:
    """
    Walk forward one hour at a time. Only hours that land on a weekday use
    up the budget; Saturday/Sunday hours are skipped for free.

    Whole weeks are jumped first and the final stretch (never empty) is
    walked, so the deadline is the same one the plain hourly walk gives.
    """
    remaining = max(0, math.floor(DEFAULT_SLA_HOURS if hours is None else hours))
    weeks, remaining = divmod(remaining, BUSINESS_HOURS_PER_WEEK)
    if weeks and not remaining:
        weeks, remaining = weeks - 1, BUSINESS_HOURS_PER_WEEK
    current = start + timedelta(weeks=weeks)
    while remaining > 0:
        current = current + timedelta(hours=1)
        if current.weekday() not in WEEKEND:
            remaining -= 1
    return current


def _format_pt_br(d: datetime) -> str:
    return d.strftime("%d/%m/%Y, %H:%M")


def _format_en_us(d: datetime) -> str:
    hour = d.hour % 12 or 12
    suffix = "AM" if d.hour < 12 else "PM"
    return f"{d.month}/{d.day}/{d:%y}, {hour}:{d:%M} {suffix}"


def _format_es_es(d: datetime) -> str:
    return d.strftime("%d/%m/%y, %H:%M")


# Short date + short time, one entry per supported reply language
LOCALE_FORMATS: Dict[str, Callable[[datetime], str]] = {
    "pt": _format_pt_br,
    "en": _format_en_us,
    "es": _format_es_es,
}


def format_fallback(d: datetime) -> str:
    return d.strftime("%Y-%m-%d %H:%M")


def format_deadline(d: datetime, lang: str) -> str:
    formatter = LOCALE_FORMATS.get(lang)
    if formatter is None:
        return format_fallback(d)
    try:
        return formatter(d)
    except ValueError:
        return format_fallback(d)


def format_sla(
    hours: Optional[float] = DEFAULT_SLA_HOURS,
    lang: str = "pt",
    now: Optional[datetime] = None,
) -> str:
    start = now or datetime.now()
    return format_deadline(add_business_hours(start, hours), lang)
