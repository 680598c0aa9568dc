from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from zoneinfo import ZoneInfo

from timeclock.services.normalizer import normalize_ts

Language = Literal["en", "es"]

_MERIDIEM: dict[str, tuple[str, str]] = {
    "en": ("AM", "PM"),
    "es": ("a. m.", "p. m."),
}

_MONTHS: dict[str, tuple[str, ...]] = {
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    "es": (
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ),
}

_WEEKDAYS: dict[str, tuple[str, ...]] = {
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    "es": ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"),
}


def _language(language: str) -> str:
    return language if language in _MERIDIEM else "en"


def format_clock_time(instant: datetime, *, tz: ZoneInfo, language: Language = "en") -> str:
    """``9:05 AM`` style wall-clock time of ``instant`` in ``tz``."""
    local = normalize_ts(instant).astimezone(tz)
    am, pm = _MERIDIEM[_language(language)]
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {am if local.hour < 12 else pm}"


def format_duration(ms: int) -> str:
    total_minutes = max(0, int(ms)) // (1000 * 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def format_date_long(day: date, *, language: Language = "en") -> str:
    lang = _language(language)
    weekday = _WEEKDAYS[lang][day.weekday()]
    month = _MONTHS[lang][day.month - 1]
    if lang == "es":
        return f"{weekday}, {day.day} de {month} de {day.year}"
    return f"{weekday}, {month} {day.day}, {day.year}"


def format_date_short(day: date, *, language: Language = "en") -> str:
    lang = _language(language)
    month = _MONTHS[lang][day.month - 1][:3]
    if lang == "es":
        return f"{day.day} {month} {day.year}"
    return f"{month} {day.day}, {day.year}"
