"""Local daily journal: day records with photos, PDF export and ZIP backups."""

from .constants import APP_NAME, SCHEMA_VERSION
from .db import DayStore
from .errors import AgendaError, ImageProcessingError, InvalidBackupFormat, MissingBlobWarning, StorageError
from .models import DayRecord, PhotoAttachment

VERSION = "1.0.0"

__all__ = [
    "APP_NAME",
    "SCHEMA_VERSION",
    "VERSION",
    "AgendaError",
    "DayRecord",
    "DayStore",
    "ImageProcessingError",
    "InvalidBackupFormat",
    "MissingBlobWarning",
    "PhotoAttachment",
    "StorageError",
]
