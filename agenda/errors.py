"""Exception types raised by the journal core.

``MissingBlobWarning`` is never raised by the restorer. It goes through
``warnings.warn`` and the affected photo is dropped.
"""


class AgendaError(Exception):
    """Base class for journal errors."""


class StorageError(AgendaError):
    """The underlying sqlite operation failed (I/O, locking, disk full)."""


class InvalidBackupFormat(AgendaError):
    """A backup archive or manifest is missing required structure."""


class ImageProcessingError(AgendaError):
    """An attached image could not be decoded or re-encoded."""


class MissingBlobWarning(UserWarning):
    """A manifest photo has no matching archive entry."""
