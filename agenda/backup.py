"""ZIP backup and restore.

Layout of an archive::

    data.json                   manifest, no binary
    photos/<date>/<id>.jpg      one entry per photo

Restore validates the whole manifest before touching the store and then
replaces the store contents in a single transaction.
"""

import io
import json
import logging
import warnings
import zipfile
import zlib
from contextlib import contextmanager
from datetime import date

from .constants import BACKUP_FORMAT_VERSION, MANIFEST_NAME, PHOTO_MIME, TEXT_FIELDS
from .errors import InvalidBackupFormat, MissingBlobWarning
from .models import DayRecord, PhotoAttachment
from .utils import is_iso_date, now_ms, photo_path

logger = logging.getLogger("Agenda")


def backup_filename(today=None):
    today = today or date.today()
    return f"agenda-backup-{today.isoformat()}.zip"


def serialize(records):
    """Split *records* into a JSON-safe manifest and a ``{path: blob}`` map.

    Day order follows the input order.
    """
    days = []
    blobs = {}
    for record in records:
        days.append(record.to_manifest())
        for photo in record.photos:
            blobs[photo_path(record.date, photo.id)] = bytes(photo.blob)
    manifest = {
        "version": BACKUP_FORMAT_VERSION,
        "exportedAt": now_ms(),
        "days": days,
    }
    return manifest, blobs


def pack(manifest, blobs):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(MANIFEST_NAME, json.dumps(manifest, ensure_ascii=False, indent=2).encode("utf-8"))
        for path, blob in blobs.items():
            zf.writestr(path, blob)
    return buf.getvalue()


_READ_ERRORS = (zipfile.BadZipFile, zlib.error, OSError, EOFError)


@contextmanager
def unpack(archive):
    """Open a backup archive and yield ``(manifest, resolve)``.

    ``resolve(path)`` returns the entry's bytes, or None when the archive has
    no such entry or the entry is unreadable. The archive is closed when the
    block exits.
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(archive))
    except (zipfile.BadZipFile, ValueError) as exc:
        raise InvalidBackupFormat(f"not a zip archive: {exc}") from exc

    with zf:
        names = set(zf.namelist())
        if MANIFEST_NAME not in names:
            raise InvalidBackupFormat(f"archive has no {MANIFEST_NAME}")

        try:
            manifest = json.loads(zf.read(MANIFEST_NAME).decode("utf-8-sig"))
        except _READ_ERRORS as exc:
            raise InvalidBackupFormat(f"{MANIFEST_NAME} is corrupt: {exc}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidBackupFormat(f"{MANIFEST_NAME} is not valid JSON: {exc}") from exc

        def resolve(path):
            if path not in names:
                return None
            try:
                return zf.read(path)
            except _READ_ERRORS as exc:
                logger.warning("archive entry %s is corrupt: %s", path, exc)
                return None

        yield manifest, resolve


def make_backup(store, today=None):
    manifest, blobs = serialize(store.get_all())
    archive = pack(manifest, blobs)
    name = backup_filename(today)
    logger.info("backup %s: %d day(s), %d photo(s), %d bytes", name, len(manifest["days"]), len(blobs), len(archive))
    return name, archive


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _text(value):
    return "" if value is None else str(value)


def _validate(manifest):
    if not isinstance(manifest, dict):
        raise InvalidBackupFormat("manifest must be a JSON object")
    days = manifest.get("days")
    if not isinstance(days, list):
        raise InvalidBackupFormat("manifest 'days' must be a list")
    for i, entry in enumerate(days):
        if not isinstance(entry, dict):
            raise InvalidBackupFormat(f"days[{i}] must be an object")
        if not is_iso_date(entry.get("date")):
            raise InvalidBackupFormat(f"days[{i}] has invalid date {entry.get('date')!r}")
        photos = entry.get("photos")
        if photos is not None and not isinstance(photos, list):
            raise InvalidBackupFormat(f"days[{i}].photos must be a list")
    return days


def _rebuild_day(entry, resolve_blob, missing):
    now = now_ms()
    record = DayRecord(
        date=entry["date"],
        updated_at=_to_int(entry.get("updatedAt"), 0) or now,
        **{name: _text(entry.get(name)) for name in TEXT_FIELDS},
    )
    seen = set()
    for meta in entry.get("photos") or []:
        photo_id = _text((meta or {}).get("id")).strip() if isinstance(meta, dict) else ""
        if not photo_id or photo_id in seen:
            logger.warning("skipping photo entry without a unique id on %s", record.date)
            continue
        path = photo_path(record.date, photo_id)
        blob = resolve_blob(path)
        if blob is None:
            warnings.warn(f"photo {path} missing from archive, dropped", MissingBlobWarning, stacklevel=2)
            missing.append(path)
            continue
        seen.add(photo_id)
        record.photos.append(
            PhotoAttachment(
                id=photo_id,
                name=_text(meta.get("name")) or f"{photo_id}.jpg",
                type=_text(meta.get("type")) or PHOTO_MIME,
                blob=bytes(blob),
                created_at=_to_int(meta.get("createdAt"), 0) or now,
            )
        )
    return record


def restore(store, manifest, resolve_blob):
    """Replace the whole store with the manifest contents.

    Raises InvalidBackupFormat before any write when the manifest is malformed.
    Photos whose blob cannot be resolved are dropped and reported under
    ``"missing"`` in the result.
    """
    days = _validate(manifest)

    missing = []
    records = [_rebuild_day(entry, resolve_blob, missing) for entry in days]

    store.replace_all(records)
    result = {
        "days": len(records),
        "photos": sum(len(r.photos) for r in records),
        "missing": missing,
    }
    logger.info("restored %d day(s), %d photo(s), %d missing", result["days"], result["photos"], len(missing))
    return result


def restore_backup(store, archive):
    with unpack(archive) as (manifest, resolve):
        return restore(store, manifest, resolve)
