"""Fixed-shape journal records.

Every field has an explicit default; loose dicts coming from the manifest or
the HTTP layer are coerced here and nowhere else.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from .constants import PHOTO_MIME, TEXT_FIELDS
from .utils import now_ms, require_iso_date


def new_photo_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PhotoAttachment:
    id: str
    name: str
    type: str = PHOTO_MIME
    blob: bytes = b""
    created_at: int = field(default_factory=now_ms)

    def meta(self) -> dict:
        """Manifest-safe metadata (no binary)."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "createdAt": self.created_at,
        }

    def __repr__(self) -> str:
        return f"PhotoAttachment(id='{self.id}', name='{self.name}', bytes={len(self.blob)})"


@dataclass
class DayRecord:
    date: str
    notes: str = ""
    goals: str = ""
    learn: str = ""
    hard: str = ""
    next: str = ""
    photos: list[PhotoAttachment] = field(default_factory=list)
    updated_at: int = field(default_factory=now_ms)

    def __post_init__(self):
        require_iso_date(self.date)
        for name in TEXT_FIELDS:
            value = getattr(self, name)
            setattr(self, name, "" if value is None else str(value))

    @classmethod
    def empty(cls, day_date: str) -> DayRecord:
        return cls(date=day_date)

    def touch(self) -> int:
        # Never move backwards, even if two mutations land in the same millisecond.
        self.updated_at = max(now_ms(), self.updated_at + 1)
        return self.updated_at

    def text_fields(self) -> dict:
        return {name: getattr(self, name) for name in TEXT_FIELDS}

    def update_fields(self, values: dict) -> bool:
        """Apply known text fields from *values*; return True if anything changed."""
        changed = False
        for name in TEXT_FIELDS:
            if name not in values:
                continue
            new = "" if values[name] is None else str(values[name])
            if new != getattr(self, name):
                setattr(self, name, new)
                changed = True
        return changed

    def find_photo(self, photo_id: str) -> PhotoAttachment | None:
        for p in self.photos:
            if p.id == photo_id:
                return p
        return None

    def to_manifest(self) -> dict:
        return {
            "date": self.date,
            **self.text_fields(),
            "updatedAt": self.updated_at,
            "photos": [p.meta() for p in self.photos],
        }

    def to_dict(self) -> dict:
        """JSON view for the HTTP layer (photo metadata only)."""
        data = self.to_manifest()
        data["photoCount"] = len(self.photos)
        return data
