import asyncio
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from agenda.backup import make_backup, restore_backup
from agenda.db import DayStore
from agenda.errors import StorageError
from agenda.models import DayRecord
from agenda.session import Debouncer, JournalSession


class DebouncerTests(unittest.IsolatedAsyncioTestCase):
    async def test_burst_of_schedules_runs_once(self):
        calls = []

        async def save():
            calls.append(len(calls))

        debouncer = Debouncer(0.2)
        for _ in range(5):
            debouncer.schedule(save)
            await asyncio.sleep(0.01)
        self.assertEqual(calls, [])

        await debouncer.wait()

        self.assertEqual(calls, [0])
        self.assertFalse(debouncer.pending)

    async def test_flush_runs_pending_immediately(self):
        calls = []

        async def save():
            calls.append("saved")

        debouncer = Debouncer(10)
        debouncer.schedule(save)
        await debouncer.flush()

        self.assertEqual(calls, ["saved"])
        self.assertFalse(debouncer.pending)
        await debouncer.flush()
        self.assertEqual(calls, ["saved"])

    async def test_cancel_drops_pending(self):
        calls = []

        async def save():
            calls.append("saved")

        debouncer = Debouncer(0.01)
        debouncer.schedule(save)
        debouncer.cancel()
        await asyncio.sleep(0.05)

        self.assertEqual(calls, [])


class JournalSessionTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.temp_dir.name) / "agenda.db")
        patcher = mock.patch("agenda.db.get_db_path", return_value=self.db_path)
        self.addCleanup(patcher.stop)
        patcher.start()
        self.store = DayStore()
        self.session = JournalSession(self.store, settings={"autosave_delay": 0.05}, today=date(2024, 1, 10))

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_edits_are_coalesced_into_one_save(self):
        await self.session.open_day("2024-01-10")
        with mock.patch.object(self.store, "put", wraps=self.store.put) as put:
            self.session.edit("notes", "h")
            self.session.edit("notes", "hello")
            self.session.edit("goals", "run")
            self.assertFalse(self.session.saved)

            await self.session.autosave.wait()

        self.assertEqual(put.call_count, 1)
        day = self.store.get("2024-01-10")
        self.assertEqual((day.notes, day.goals), ("hello", "run"))
        self.assertTrue(self.session.saved)

    async def test_open_day_flushes_pending_edits(self):
        await self.session.open_day("2024-01-10")
        self.session.edit("learn", "asyncio")

        await self.session.open_day("2024-01-11")

        self.assertEqual(self.store.get("2024-01-10").learn, "asyncio")
        self.assertEqual(self.session.selected_date, "2024-01-11")
        self.assertIsNotNone(self.store.get("2024-01-11"))

    async def test_shift_day_and_month(self):
        day = await self.session.shift_day(-10)

        self.assertEqual(day.date, "2023-12-31")
        self.assertEqual(self.session.current_month, (2023, 12))
        self.assertEqual(self.session.shift_month(1), (2024, 1))
        self.assertEqual(self.session.shift_month(-13), (2022, 12))

    async def test_failed_autosave_keeps_draft_for_retry(self):
        await self.session.open_day("2024-01-10")
        with mock.patch.object(self.store, "put", side_effect=StorageError("disk full")):
            self.session.edit("notes", "important")
            with self.assertLogs("Agenda", level="ERROR"):
                await self.session.autosave.wait()

        self.assertFalse(self.session.saved)
        self.assertEqual(self.store.get("2024-01-10").notes, "")

        await self.session.save_current_day()

        self.assertEqual(self.store.get("2024-01-10").notes, "important")
        self.assertTrue(self.session.saved)

    async def test_discard_pending_keeps_restored_contents(self):
        await self.session.open_day("2024-01-10")
        self.store.put(DayRecord(date="2024-01-10", notes="restored-notes"))
        _name, archive = make_backup(self.store)

        self.session.edit("notes", "pre-restore draft")
        restore_backup(self.store, archive)
        self.session.discard_pending()
        self.assertFalse(self.session.autosave.pending)

        self.session.edit("goals", "new goal")
        await self.session.autosave.wait()

        day = self.store.get("2024-01-10")
        self.assertEqual((day.notes, day.goals), ("restored-notes", "new goal"))

    async def test_unknown_field_is_rejected(self):
        with self.assertRaises(ValueError):
            self.session.edit("mood", "ok")


if __name__ == "__main__":
    unittest.main()
