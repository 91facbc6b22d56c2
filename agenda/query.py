"""Range queries and derived text: search, keyword insights, calendar grid."""

from __future__ import annotations

import calendar
import re
from collections import Counter
from datetime import date, timedelta

from .constants import (
    FIELD_LABELS,
    INSIGHTS_RECENT_DAYS,
    KEYWORD_MIN_LENGTH,
    KEYWORD_TOP_N,
    SEARCH_MAX_RESULTS,
    STOPWORDS,
    TEXT_FIELDS,
)
from .models import DayRecord
from .utils import to_iso_date


def query_range(source, from_date: str, to_date: str) -> list[DayRecord]:
    """Records with ``from_date <= date <= to_date``.

    *source* is either a store (queried in sqlite) or an iterable of records.
    Dates without a record are not synthesized.
    """
    if hasattr(source, "query_range"):
        return source.query_range(from_date, to_date)
    return [r for r in source if from_date <= r.date <= to_date]


def has_content(record: DayRecord) -> bool:
    return any(getattr(record, name).strip() for name in TEXT_FIELDS)


def full_text(record: DayRecord) -> str:
    parts = []
    for name in TEXT_FIELDS:
        value = getattr(record, name).strip()
        if value:
            parts.append(f"{FIELD_LABELS[name]}:\n{value}")
    return "\n\n".join(parts)


_non_word_re = re.compile(r"[\W_]+", re.UNICODE)


def _tokens(text):
    return _non_word_re.sub(" ", text.lower()).split()


def keyword_frequency(records, stopwords=None, limit=KEYWORD_TOP_N) -> list[tuple[str, int]]:
    """Top *limit* words across the records' text fields.

    Tokens shorter than four characters or in *stopwords* are ignored. Field
    labels are not part of the text. Equal counts keep the order in which the
    words were first seen.
    """
    stop = STOPWORDS if stopwords is None else frozenset(stopwords)
    counts = Counter()
    for record in records:
        text = "\n".join(getattr(record, name) for name in TEXT_FIELDS)
        for word in _tokens(text):
            if len(word) < KEYWORD_MIN_LENGTH or word in stop:
                continue
            counts[word] += 1
    # Counter keeps insertion order and sorted() is stable.
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ranked[:limit]


def search(store, q="", from_date="1900-01-01", to_date="2999-12-31", limit=SEARCH_MAX_RESULTS):
    needle = (q or "").strip().lower()
    days = query_range(store, from_date or "1900-01-01", to_date or "2999-12-31")
    hits = [d for d in days if not needle or needle in full_text(d).lower()]
    hits.sort(key=lambda d: d.date, reverse=True)
    return hits[:limit]


def insights(store, from_date, to_date, extra_stopwords=()):
    days = query_range(store, from_date, to_date)
    stopwords = STOPWORDS | frozenset(extra_stopwords or ())
    recent = sorted(days, key=lambda d: d.date, reverse=True)[:INSIGHTS_RECENT_DAYS]
    return {
        "from": from_date,
        "to": to_date,
        "total_days": len(days),
        "days_with_notes": sum(1 for d in days if has_content(d)),
        "total_photos": sum(len(d.photos) for d in days),
        "top_keywords": keyword_frequency(days, stopwords=stopwords),
        "recent": [
            {"date": d.date, "has_text": has_content(d), "photos": len(d.photos)}
            for d in recent
        ],
    }


# ── preset ranges ──


def week_range(today: date) -> tuple[str, str]:
    monday = today - timedelta(days=today.weekday())
    return to_iso_date(monday), to_iso_date(monday + timedelta(days=6))


def month_range(today: date) -> tuple[str, str]:
    last = calendar.monthrange(today.year, today.month)[1]
    return to_iso_date(today.replace(day=1)), to_iso_date(today.replace(day=last))


def semester_range(today: date) -> tuple[str, str]:
    if today.month <= 6:
        return to_iso_date(date(today.year, 1, 1)), to_iso_date(date(today.year, 6, 30))
    return to_iso_date(date(today.year, 7, 1)), to_iso_date(date(today.year, 12, 31))


def month_grid(store, year: int, month: int, today: date | None = None, selected: str | None = None):
    """Sunday-first weeks for a month, padded with adjacent-month days."""
    today = today or date.today()
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month)
    first, last = weeks[0][0], weeks[-1][-1]
    by_date = {d.date: d for d in query_range(store, to_iso_date(first), to_iso_date(last))}

    grid = []
    for week in weeks:
        row = []
        for d in week:
            iso = to_iso_date(d)
            record = by_date.get(iso)
            row.append(
                {
                    "date": iso,
                    "day": d.day,
                    "muted": d.month != month,
                    "today": d == today,
                    "selected": iso == selected,
                    "has_text": bool(record and has_content(record)),
                    "photos": len(record.photos) if record else 0,
                }
            )
        grid.append(row)
    return grid
