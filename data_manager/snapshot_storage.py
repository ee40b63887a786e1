"""SnapshotStorage
-----------------
Local-storage style key/value access on top of SQLAlchemy. Each write is a
single commit, so a reader never sees a half-written snapshot.
"""
from __future__ import annotations

from typing import Optional

from models.models import StorageEntry


class SnapshotStorage:
    """``get_item`` / ``set_item`` / ``remove_item`` over ``StorageEntry``."""

    def __init__(self, database):
        """Create a new SnapshotStorage.

        Args:
            database: The SQLAlchemy `db` object.
        """
        self.db = database

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored text for ``key``, or None if nothing is stored."""
        entry = self.db.session.get(StorageEntry, key)
        return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        """Overwrite the value stored under ``key``."""
        entry = self.db.session.get(StorageEntry, key)
        if entry is None:
            self.db.session.add(StorageEntry(key=key, value=value))
        else:
            entry.value = value
        try:
            self.db.session.commit()
        except Exception:
            self.db.session.rollback()
            raise

    def remove_item(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""
        entry = self.db.session.get(StorageEntry, key)
        if entry is None:
            return
        self.db.session.delete(entry)
        self.db.session.commit()
