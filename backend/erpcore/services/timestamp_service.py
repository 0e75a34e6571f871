# Overview: Renders stored UTC instants in a tenant's timezone, date format and clock style.

"""
Audit Timestamp Normalizer

Stored timestamps are always UTC. Display strings are computed at the
response boundary and never written back:

    format_instant(datetime(2024, 6, 1, 10, 0), "Asia/Kolkata", "DD-MM-YYYY", "24-hour")
    -> "01-06-2024 15:30"

Date formats use moment-style tokens (YYYY, MM, DD, MMM, ...). Compact
PHP-style formats stored by older tenants ("d-m-Y", "m/d/Y") are translated
to the equivalent moment tokens first.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from ..extensions import db
from ..models import Company
from ..time_utils import as_utc, parse_iso_datetime


logger = logging.getLogger(__name__)

TIME_STYLES = {
    "12-hour": "hh:mm A",
    "24-hour": "HH:mm",
}

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Longest tokens first so "MMMM" is never read as "MM" + "MM".
_TOKEN_RE = re.compile(r"YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd|HH|H|hh|h|mm|ss|A|a")

_TOKENS = {
    "YYYY": lambda dt: f"{dt.year:04d}",
    "YY": lambda dt: f"{dt.year % 100:02d}",
    "MMMM": lambda dt: _MONTHS[dt.month - 1],
    "MMM": lambda dt: _MONTHS[dt.month - 1][:3],
    "MM": lambda dt: f"{dt.month:02d}",
    "M": lambda dt: str(dt.month),
    "DD": lambda dt: f"{dt.day:02d}",
    "D": lambda dt: str(dt.day),
    "dddd": lambda dt: _WEEKDAYS[dt.weekday()],
    "ddd": lambda dt: _WEEKDAYS[dt.weekday()][:3],
    "HH": lambda dt: f"{dt.hour:02d}",
    "H": lambda dt: str(dt.hour),
    "hh": lambda dt: f"{(dt.hour % 12) or 12:02d}",
    "h": lambda dt: str((dt.hour % 12) or 12),
    "mm": lambda dt: f"{dt.minute:02d}",
    "ss": lambda dt: f"{dt.second:02d}",
    "A": lambda dt: "AM" if dt.hour < 12 else "PM",
    "a": lambda dt: "am" if dt.hour < 12 else "pm",
}

_PHP_TOKENS = {
    "d": "DD",
    "j": "D",
    "m": "MM",
    "n": "M",
    "Y": "YYYY",
    "y": "YY",
    "M": "MMM",
    "F": "MMMM",
    "D": "ddd",
    "l": "dddd",
}
_PHP_FORMAT_RE = re.compile(r"[djmnYyMFDl](?:[^A-Za-z]+[djmnYyMFDl])*")
_PHP_YEAR_RE = re.compile(r"(?<![A-Za-z])[Yy](?![A-Za-z])")


class FormattingError(ValueError):
    """A stored value or a tenant setting could not be rendered."""
    pass


@dataclass(frozen=True)
class DisplaySettings:
    timezone: str
    date_format: str
    time_style: str

    def to_dict(self) -> dict:
        return {
            "timezone": self.timezone,
            "date_format": self.date_format,
            "time_format": self.time_style,
        }


def default_display_settings() -> DisplaySettings:
    return DisplaySettings(
        timezone=current_app.config["DEFAULT_TIMEZONE"],
        date_format=current_app.config["DEFAULT_DATE_FORMAT"],
        time_style=current_app.config["DEFAULT_TIME_STYLE"],
    )


def get_display_settings(tenant_id: int | None) -> DisplaySettings:
    """Company display settings, with configured defaults for unset values."""
    defaults = default_display_settings()
    company = db.session.get(Company, tenant_id) if tenant_id is not None else None
    if company is None:
        return defaults
    return DisplaySettings(
        timezone=company.timezone or defaults.timezone,
        date_format=company.date_format or defaults.date_format,
        time_style=company.time_format or defaults.time_style,
    )


def translate_date_format(date_format: str) -> str:
    """
    Moment-style tokens for a stored date format.

    "d-m-Y" -> "DD-MM-YYYY". Formats already in moment style pass through.
    A lone Y or y marks the PHP dialect; "D/M" stays moment day/month.
    """
    if _PHP_FORMAT_RE.fullmatch(date_format) and _PHP_YEAR_RE.search(date_format):
        return "".join(_PHP_TOKENS.get(ch, ch) for ch in date_format)
    return date_format


def render_tokens(dt: datetime, pattern: str) -> str:
    """Render a moment-style pattern; [bracketed] text is copied literally."""
    out = []
    for i, chunk in enumerate(re.split(r"\[([^\]]*)\]", pattern)):
        if i % 2:
            out.append(chunk)
            continue
        out.append(_TOKEN_RE.sub(lambda m: _TOKENS[m.group(0)](dt), chunk))
    return "".join(out)


def validate_time_style(time_style: str) -> str:
    if time_style not in TIME_STYLES:
        raise FormattingError(f"Unknown time style: {time_style}")
    return time_style


def validate_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as exc:
        raise FormattingError(f"Unknown timezone: {name}") from exc


def _coerce_instant(instant: Any) -> datetime:
    if isinstance(instant, datetime):
        return instant
    if isinstance(instant, str):
        try:
            parsed = parse_iso_datetime(instant)
        except ValueError as exc:
            raise FormattingError(f"Not an ISO-8601 datetime: {instant!r}") from exc
        if parsed is None:
            raise FormattingError("Empty datetime string")
        return parsed
    raise FormattingError(f"Cannot format {type(instant).__name__} as a timestamp")


def format_instant(
    instant: datetime | str | None,
    tenant_timezone: str,
    date_format: str,
    time_style: str,
) -> str | None:
    """
    UTC instant -> "<date> <time>" in the tenant's zone.

    Naive datetimes are UTC. None yields None. Anything that cannot be
    rendered is logged and yields None, so one bad row never fails a
    response.
    """
    if instant is None:
        return None
    try:
        tz = validate_timezone(tenant_timezone)
        time_pattern = TIME_STYLES[validate_time_style(time_style)]
        local = as_utc(_coerce_instant(instant)).astimezone(tz)
        pattern = f"{translate_date_format(date_format)} {time_pattern}"
        return render_tokens(local, pattern)
    except FormattingError as exc:
        logger.warning("Timestamp not formatted: %s", exc)
        return None


def display_record(
    record: dict[str, Any],
    settings: DisplaySettings,
    fields: Iterable[str],
) -> dict[str, Any]:
    """Copy of record with a "<field>_display" value beside each listed field."""
    out = dict(record)
    for field in fields:
        if field not in record:
            continue
        out[f"{field}_display"] = format_instant(
            record[field], settings.timezone, settings.date_format, settings.time_style
        )
    return out
