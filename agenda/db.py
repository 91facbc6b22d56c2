import json
import logging
import os
import sqlite3
import threading
from contextlib import contextmanager, suppress

logger = logging.getLogger("Agenda")

from .config import DEFAULT_SETTINGS, normalize_settings
from .constants import SCHEMA_VERSION
from .errors import StorageError
from .models import DayRecord, PhotoAttachment
from .paths import get_db_path
from .schema import SCHEMA_SQL
from .utils import now_ms, require_iso_date


class DayStore:
    """sqlite-backed record store: one row per calendar date plus its photos.

    Every public method opens its own connection, so the store is safe to use
    from the aiohttp handlers and from worker threads alike. Writes are full
    overwrites of a day (``put``); there is no field-level merge.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def instance(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        self._init_db()

    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = 5000")
        return conn

    @contextmanager
    def _transaction(self):
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open {self.db_path}: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            with suppress(sqlite3.Error):
                conn.rollback()
            raise StorageError(str(exc)) from exc
        except BaseException:
            with suppress(sqlite3.Error):
                conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        with self._transaction() as conn:
            conn.executescript(SCHEMA_SQL)
            self._migrate_db(conn)
            conn.execute(
                "INSERT OR REPLACE INTO meta(key,value) VALUES('schema_version', ?)",
                (str(SCHEMA_VERSION),),
            )

    def _migrate_db(self, conn):
        row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
        if row and int(row["value"]) > SCHEMA_VERSION:
            logger.warning(
                "database %s has schema version %s, newer than supported %s",
                self.db_path,
                row["value"],
                SCHEMA_VERSION,
            )

    # ── reads ──

    def get(self, day_date):
        require_iso_date(day_date)
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM days WHERE date = ?", (day_date,)).fetchone()
            if not row:
                return None
            return self._row_to_day(row, self._photos_for(conn, day_date, day_date).get(day_date, []))

    def get_all(self):
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM days ORDER BY date ASC").fetchall()
            photos = self._photos_for(conn)
            return [self._row_to_day(row, photos.get(row["date"], [])) for row in rows]

    def query_range(self, from_date, to_date):
        # ISO dates sort lexicographically in chronological order.
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM days WHERE date >= ? AND date <= ? ORDER BY date ASC",
                (from_date, to_date),
            ).fetchall()
            if not rows:
                return []
            photos = self._photos_for(conn, from_date, to_date)
            return [self._row_to_day(row, photos.get(row["date"], [])) for row in rows]

    def count(self):
        with self._transaction() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM days").fetchone()[0])

    def count_photos(self):
        with self._transaction() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM photos").fetchone()[0])

    # ── writes ──

    def put(self, record):
        require_iso_date(record.date)
        with self._transaction() as conn:
            self._write_day(conn, record)

    def ensure_exists(self, day_date):
        require_iso_date(day_date)
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO days(date,notes,goals,learn,hard,next,updated_at) VALUES(?,?,?,?,?,?,?)",
                (day_date, "", "", "", "", "", now_ms()),
            )
            row = conn.execute("SELECT * FROM days WHERE date = ?", (day_date,)).fetchone()
            return self._row_to_day(row, self._photos_for(conn, day_date, day_date).get(day_date, []))

    def clear(self):
        with self._transaction() as conn:
            conn.execute("DELETE FROM photos")
            conn.execute("DELETE FROM days")

    def replace_all(self, records):
        """Wipe the store and write *records* in a single transaction.

        If any write fails the transaction rolls back and the previous
        contents are left untouched.
        """
        with self._transaction() as conn:
            conn.execute("DELETE FROM photos")
            conn.execute("DELETE FROM days")
            for record in records:
                self._write_day(conn, record)
        return len(records)

    def _write_day(self, conn, record):
        conn.execute(
            """
            INSERT INTO days(date,notes,goals,learn,hard,next,updated_at)
            VALUES(?,?,?,?,?,?,?)
            ON CONFLICT(date) DO UPDATE SET
              notes=excluded.notes,
              goals=excluded.goals,
              learn=excluded.learn,
              hard=excluded.hard,
              next=excluded.next,
              updated_at=excluded.updated_at
            """,
            (
                record.date,
                record.notes,
                record.goals,
                record.learn,
                record.hard,
                record.next,
                int(record.updated_at),
            ),
        )
        conn.execute("DELETE FROM photos WHERE date = ?", (record.date,))
        for position, photo in enumerate(record.photos):
            conn.execute(
                "INSERT INTO photos(id,date,position,name,type,blob,created_at) VALUES(?,?,?,?,?,?,?)",
                (
                    photo.id,
                    record.date,
                    position,
                    photo.name,
                    photo.type,
                    sqlite3.Binary(bytes(photo.blob)),
                    int(photo.created_at),
                ),
            )

    # ── settings ──

    def get_settings(self) -> dict:
        with self._transaction() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = 'settings'").fetchone()
        if row:
            try:
                return normalize_settings(json.loads(row["value"]))
            except (json.JSONDecodeError, TypeError):
                logger.warning("stored settings are not valid JSON, using defaults")
        return normalize_settings(DEFAULT_SETTINGS)

    def set_settings(self, settings: dict) -> dict:
        settings = normalize_settings(settings)
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, value) VALUES('settings', ?)",
                (json.dumps(settings, ensure_ascii=False),),
            )
        return settings

    # ── row mapping ──

    def _photos_for(self, conn, from_date=None, to_date=None):
        if from_date is None:
            rows = conn.execute("SELECT * FROM photos ORDER BY date ASC, position ASC").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM photos WHERE date >= ? AND date <= ? ORDER BY date ASC, position ASC",
                (from_date, to_date),
            ).fetchall()
        out = {}
        for row in rows:
            out.setdefault(row["date"], []).append(self._row_to_photo(row))
        return out

    @staticmethod
    def _row_to_photo(row):
        return PhotoAttachment(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            blob=bytes(row["blob"]),
            created_at=int(row["created_at"]),
        )

    @staticmethod
    def _row_to_day(row, photos):
        return DayRecord(
            date=row["date"],
            notes=row["notes"],
            goals=row["goals"],
            learn=row["learn"],
            hard=row["hard"],
            next=row["next"],
            photos=list(photos),
            updated_at=int(row["updated_at"]),
        )
