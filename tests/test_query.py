import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from agenda.db import DayStore
from agenda.models import DayRecord, PhotoAttachment
from agenda.query import (
    full_text,
    has_content,
    insights,
    keyword_frequency,
    month_grid,
    month_range,
    query_range,
    search,
    semester_range,
    week_range,
)


class TextAggregationTests(unittest.TestCase):
    def test_has_content_ignores_whitespace(self):
        self.assertFalse(has_content(DayRecord(date="2024-01-01", notes="   \n", next="\t")))
        self.assertTrue(has_content(DayRecord(date="2024-01-01", hard=" x ")))

    def test_full_text_orders_and_labels_fields(self):
        record = DayRecord(date="2024-01-01", notes=" walk ", goals="", learn="python", hard="  ", next="rest")

        self.assertEqual(full_text(record), "Notes:\nwalk\n\nLearnings:\npython\n\nNext step:\nrest")
        self.assertEqual(full_text(record), full_text(record))

    def test_full_text_empty_record(self):
        self.assertEqual(full_text(DayRecord(date="2024-01-01")), "")

    def test_keyword_frequency_ties_keep_first_seen_order(self):
        days = [
            DayRecord(date="2024-01-01", notes="alpha alpha beta"),
            DayRecord(date="2024-01-03", notes="beta gamma"),
        ]

        self.assertEqual(keyword_frequency(days), [("alpha", 2), ("beta", 2), ("gamma", 1)])

    def test_keyword_frequency_filters_short_words_stopwords_and_punctuation(self):
        days = [DayRecord(date="2024-01-01", notes="Reunião, reunião! para com sol; projeto-novo", goals="PROJETO")]

        ranked = dict(keyword_frequency(days))

        self.assertEqual(ranked["reunião"], 2)
        self.assertEqual(ranked["projeto"], 2)
        self.assertEqual(ranked["novo"], 1)
        self.assertNotIn("para", ranked)
        self.assertNotIn("sol", ranked)
        self.assertNotIn("notes", ranked)

    def test_keyword_frequency_limits_to_top_ten(self):
        words = " ".join(f"word{i:02d}" for i in range(15))
        self.assertEqual(len(keyword_frequency([DayRecord(date="2024-01-01", notes=words)])), 10)

    def test_keyword_frequency_custom_stopwords(self):
        days = [DayRecord(date="2024-01-01", notes="alpha beta beta")]
        self.assertEqual(keyword_frequency(days, stopwords={"beta"}), [("alpha", 1)])

    def test_query_range_over_plain_records(self):
        days = [DayRecord(date="2024-01-01"), DayRecord(date="2024-01-03")]
        self.assertEqual([d.date for d in query_range(days, "2024-01-02", "2024-01-03")], ["2024-01-03"])


class PresetRangeTests(unittest.TestCase):
    def test_week_range_is_monday_to_sunday(self):
        self.assertEqual(week_range(date(2024, 1, 3)), ("2024-01-01", "2024-01-07"))
        self.assertEqual(week_range(date(2024, 1, 7)), ("2024-01-01", "2024-01-07"))

    def test_month_range_handles_leap_year(self):
        self.assertEqual(month_range(date(2024, 2, 10)), ("2024-02-01", "2024-02-29"))

    def test_semester_range(self):
        self.assertEqual(semester_range(date(2024, 6, 30)), ("2024-01-01", "2024-06-30"))
        self.assertEqual(semester_range(date(2024, 7, 1)), ("2024-07-01", "2024-12-31"))


class StoreQueryTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.temp_dir.name) / "agenda.db")
        patcher = mock.patch("agenda.db.get_db_path", return_value=self.db_path)
        self.addCleanup(patcher.stop)
        patcher.start()
        self.store = DayStore()
        self.store.put(
            DayRecord(
                date="2024-01-01",
                notes="alpha alpha beta",
                photos=[PhotoAttachment(id="p1", name="p1.jpg", blob=b"jpeg")],
            )
        )
        self.store.put(DayRecord(date="2024-01-03", notes="beta gamma"))
        self.store.put(DayRecord(date="2024-01-05", goals="Gamma ray"))

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_range_skips_dates_without_records(self):
        days = query_range(self.store, "2024-01-01", "2024-01-02")

        self.assertEqual([d.date for d in days], ["2024-01-01"])
        self.assertEqual(len(days[0].photos), 1)

    def test_search_is_case_insensitive_and_most_recent_first(self):
        hits = search(self.store, q="GAMMA")
        self.assertEqual([d.date for d in hits], ["2024-01-05", "2024-01-03"])

        hits = search(self.store, q="gamma", from_date="2024-01-01", to_date="2024-01-04")
        self.assertEqual([d.date for d in hits], ["2024-01-03"])

    def test_search_without_query_lists_range(self):
        self.assertEqual(len(search(self.store, q="  ")), 3)

    def test_insights_totals(self):
        self.store.ensure_exists("2024-01-02")

        data = insights(self.store, "2024-01-01", "2024-01-07")

        self.assertEqual(data["total_days"], 4)
        self.assertEqual(data["days_with_notes"], 3)
        self.assertEqual(data["total_photos"], 1)
        self.assertEqual(data["top_keywords"][:3], [("alpha", 2), ("beta", 2), ("gamma", 2)])
        self.assertEqual(data["recent"][0]["date"], "2024-01-05")

    def test_month_grid_is_sunday_first_with_markers(self):
        weeks = month_grid(self.store, 2024, 1, today=date(2024, 1, 3), selected="2024-01-05")

        self.assertEqual(len(weeks), 5)
        self.assertTrue(all(len(w) == 7 for w in weeks))
        first = weeks[0][0]
        self.assertEqual(first["date"], "2023-12-31")
        self.assertTrue(first["muted"])
        cells = {c["date"]: c for w in weeks for c in w}
        self.assertTrue(cells["2024-01-01"]["has_text"])
        self.assertEqual(cells["2024-01-01"]["photos"], 1)
        self.assertTrue(cells["2024-01-03"]["today"])
        self.assertTrue(cells["2024-01-05"]["selected"])
        self.assertFalse(cells["2024-01-02"]["has_text"])
        self.assertTrue(cells["2024-02-03"]["muted"])


if __name__ == "__main__":
    unittest.main()
