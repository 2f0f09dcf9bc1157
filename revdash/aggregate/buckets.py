"""Time bucketing: Monday-aligned ISO week keys and YYYY-MM month keys."""
from __future__ import annotations

import datetime
import math
import re

import pandas as pd

# GA4 isoYearIsoWeek dimension, e.g. "202607"
ISO_YEAR_WEEK = re.compile(r"^(\d{4})(\d{2})$")


def _to_date(value) -> datetime.date | None:
    """Coerce a date-like value to a UTC calendar date, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, (int, float)):
        ts = pd.to_datetime(value, unit="s", utc=True, errors="coerce")
    else:
        text = str(value).strip()
        if not text:
            return None
        match = ISO_YEAR_WEEK.match(text)
        if match:
            try:
                return datetime.date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
            except ValueError:
                return None
        ts = pd.to_datetime(text, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def week_start(value) -> str:
    """Monday (UTC) of the ISO week containing value, as YYYY-MM-DD.

    Accepts dates, datetimes, ISO strings, epoch seconds and GA4 isoYearIsoWeek
    strings. Unparseable values give "".
    """
    day = _to_date(value)
    if day is None:
        return ""
    return (day - datetime.timedelta(days=day.weekday())).isoformat()


def month_of(week: str) -> str:
    return (week or "")[:7]


def collect_weeks(*columns: pd.Series) -> list[str]:
    """Distinct, sorted week keys across every given column. Empty keys are dropped."""
    weeks: set[str] = set()
    for col in columns:
        weeks.update(w for w in col.dropna().astype(str) if w)
    return sorted(weeks)


def collect_months(weeks: list[str]) -> list[str]:
    return sorted({month_of(w) for w in weeks if w})


def split_by(df: pd.DataFrame, column: str) -> dict[str, pd.DataFrame]:
    """Partition a frame on a key column into {key: sub-frame}."""
    return {str(key): group for key, group in df.groupby(column, sort=False)}
