"""Explicit session state and debounced autosave.

A session owns what a UI would keep globally: the selected date, the month on
screen and the edits not yet written. Edits are coalesced by a Debouncer so a
burst of keystrokes turns into one read-modify-write of the day record.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta

from .config import DEFAULT_SETTINGS
from .constants import TEXT_FIELDS
from .utils import from_iso_date, require_iso_date, to_iso_date

logger = logging.getLogger("Agenda")


class Debouncer:
    """Run an async callback once, *delay* seconds after the last ``schedule``.

    Each ``schedule`` cancels the pending timer and starts a new one.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._task: asyncio.Task | None = None
        self._callback = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, callback) -> None:
        self.cancel()
        self._callback = callback
        self._task = asyncio.get_running_loop().create_task(self._run_later(callback))

    async def _run_later(self, callback):
        await asyncio.sleep(self.delay)
        self._callback = None
        try:
            await callback()
        except Exception:
            logger.exception("debounced callback failed")

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._callback = None

    async def flush(self) -> None:
        """Run the pending callback now instead of waiting for the quiet period."""
        callback = self._callback
        if callback is None or not self.pending:
            return
        self.cancel()
        await callback()

    async def wait(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class JournalSession:
    def __init__(self, store, settings: dict | None = None, today: date | None = None):
        self.store = store
        self.settings = settings or dict(DEFAULT_SETTINGS)
        today = today or date.today()
        self.selected_date = to_iso_date(today)
        self.current_month = (today.year, today.month)
        self._draft: dict[str, str] = {}
        self._draft_date: str | None = None
        self.autosave = Debouncer(self.settings.get("autosave_delay", DEFAULT_SETTINGS["autosave_delay"]))
        self.saved = True

    async def open_day(self, day_date: str):
        require_iso_date(day_date)
        await self.autosave.flush()
        self.selected_date = day_date
        d = from_iso_date(day_date)
        self.current_month = (d.year, d.month)
        return self.store.ensure_exists(day_date)

    async def shift_day(self, delta: int):
        d = from_iso_date(self.selected_date) + timedelta(days=delta)
        return await self.open_day(to_iso_date(d))

    def shift_month(self, delta: int) -> tuple[int, int]:
        year, month = self.current_month
        index = year * 12 + (month - 1) + delta
        self.current_month = (index // 12, index % 12 + 1)
        return self.current_month

    def edit(self, field: str, value: str) -> None:
        """Buffer a text edit for the selected day and (re)start the autosave timer."""
        if field not in TEXT_FIELDS:
            raise ValueError(f"unknown field: {field}")
        if self._draft_date != self.selected_date:
            self._draft = {}
            self._draft_date = self.selected_date
        self._draft[field] = "" if value is None else str(value)
        self.saved = False
        self.autosave.schedule(self.save_current_day)

    async def save_current_day(self):
        # The draft is cleared only after the write succeeds.
        day_date = self._draft_date or self.selected_date
        draft = dict(self._draft)
        day = self.store.get(day_date)
        if day is None:
            day = self.store.ensure_exists(day_date)
        if draft and day.update_fields(draft):
            day.touch()
            self.store.put(day)
            logger.debug("autosaved %s fields=%s", day_date, sorted(draft))
        self._draft, self._draft_date = {}, None
        self.saved = True
        return day

    def discard_pending(self) -> None:
        """Drop buffered edits without saving them, e.g. after the store was replaced."""
        self.autosave.cancel()
        self._draft, self._draft_date = {}, None
        self.saved = True

    async def close(self) -> None:
        await self.autosave.flush()
