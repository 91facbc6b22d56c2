SCHEMA_SQL = r"""
PRAGMA foreign_keys = ON;
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS days (
  date TEXT PRIMARY KEY,
  notes TEXT NOT NULL DEFAULT '',
  goals TEXT NOT NULL DEFAULT '',
  learn TEXT NOT NULL DEFAULT '',
  hard TEXT NOT NULL DEFAULT '',
  next TEXT NOT NULL DEFAULT '',
  updated_at INTEGER NOT NULL
);

-- Photos belong to exactly one day; position keeps display order.
CREATE TABLE IF NOT EXISTS photos (
  id TEXT NOT NULL,
  date TEXT NOT NULL,
  position INTEGER NOT NULL,
  name TEXT NOT NULL,
  type TEXT NOT NULL,
  blob BLOB NOT NULL,
  created_at INTEGER NOT NULL,
  PRIMARY KEY (date, id),
  FOREIGN KEY (date) REFERENCES days(date) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_days_updated ON days(updated_at);
CREATE INDEX IF NOT EXISTS idx_photos_date_position ON photos(date, position);
"""
