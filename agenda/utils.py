import re
import time
from datetime import date

from .constants import DEFAULT_LOCALE, LOCALES, PHOTO_PATH_TEMPLATE, SUMMARY_MAX_CHARS


def now_ms():
    return int(time.time() * 1000)


_iso_date_re = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(value):
    if not isinstance(value, str) or not _iso_date_re.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def require_iso_date(value):
    if not is_iso_date(value):
        raise ValueError(f"invalid date: {value!r} (expected YYYY-MM-DD)")
    return value


def to_iso_date(d):
    return d.isoformat()


def from_iso_date(value):
    return date.fromisoformat(require_iso_date(value))


_ws_re = re.compile(r"\s+")


def normalize_text(s):
    if s is None:
        return ""
    s = str(s).strip()
    s = _ws_re.sub(" ", s)
    return s


def trim_one_line(s, limit=SUMMARY_MAX_CHARS):
    return normalize_text(s)[:limit]


def photo_path(day_date, photo_id):
    return PHOTO_PATH_TEMPLATE.format(date=day_date, photo_id=photo_id)


def _locale_table(locale):
    return LOCALES.get(locale) or LOCALES[DEFAULT_LOCALE]


def _capitalize_first(s):
    return s[:1].upper() + s[1:]


def format_full_date(iso, locale=DEFAULT_LOCALE):
    d = from_iso_date(iso)
    table = _locale_table(locale)
    text = table["full_date"].format(
        weekday=table["weekdays"][d.weekday()],
        month=table["months"][d.month - 1],
        day=d.day,
        year=d.year,
    )
    return _capitalize_first(text)


def format_month_label(year, month, locale=DEFAULT_LOCALE):
    table = _locale_table(locale)
    text = table["month_label"].format(month=table["months"][month - 1], year=year)
    return _capitalize_first(text)
