"""CollectionStore
-----------------
Owns the user's ordered movie collection. The in-memory list is the source
of truth for rendering and is mirrored to the durable snapshot after every
mutation, so route functions only deal with add/remove intents.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import List, Optional, Tuple

from errors import DuplicateError, StorageCorruptionError
from models.models import MovieRecord

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "movieCollection"


class CollectionStore:
    """Ordered, id-unique list of MovieRecords backed by a durable snapshot."""

    def __init__(self, storage, storage_key: str = DEFAULT_STORAGE_KEY):
        """Create a new, empty CollectionStore.

        Call ``load_all`` to populate it from the durable snapshot.

        Args:
            storage: Object with ``get_item``, ``set_item`` and
                ``remove_item`` (see ``SnapshotStorage``).
            storage_key: Name of the snapshot entry.
        """
        self.storage = storage
        self.storage_key = storage_key
        self._movies: List[MovieRecord] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._movies)

    def __contains__(self, movie_id: object) -> bool:
        return any(movie.id == movie_id for movie in self._movies)

    # ------------------------- Reads -------------------------
    def snapshot(self) -> Tuple[MovieRecord, ...]:
        """Return the current records in display order."""
        with self._lock:
            return tuple(self._movies)

    def get(self, movie_id: int) -> Optional[MovieRecord]:
        """Return the record with ``movie_id`` or None."""
        with self._lock:
            return next((m for m in self._movies if m.id == movie_id), None)

    # ------------------------ Mutations ----------------------
    def add(self, record: MovieRecord) -> MovieRecord:
        """Append a record and persist the collection.

        Args:
            record: The movie to add.

        Returns:
            MovieRecord: The record that was added.

        Raises:
            DuplicateError: If a record with the same id is already present.
        """
        with self._lock:
            if record.id in self:
                raise DuplicateError("This movie is already in your collection")
            movies = self._movies + [record]
            self._write(movies)
            self._movies = movies
        logger.info("Added movie id=%s title=%r", record.id, record.title)
        return record

    def remove(self, movie_id: int) -> bool:
        """Remove the record with ``movie_id``.

        Unknown ids are a no-op: neither the collection nor the snapshot is
        touched.

        Returns:
            bool: True if a record was removed.
        """
        with self._lock:
            remaining = [m for m in self._movies if m.id != movie_id]
            if len(remaining) == len(self._movies):
                return False
            self._write(remaining)
            self._movies = remaining
        logger.info("Removed movie id=%s", movie_id)
        return True

    # ----------------------- Persistence ---------------------
    def load_all(self) -> Tuple[MovieRecord, ...]:
        """Replace the in-memory collection with the durable snapshot.

        A snapshot that cannot be decoded is cleared and the collection
        starts empty.
        """
        with self._lock:
            raw = self.storage.get_item(self.storage_key)
            if raw is None:
                self._movies = []
                return ()
            try:
                self._movies = self._decode(raw)
            except StorageCorruptionError as exc:
                logger.error("Error loading saved movies, clearing snapshot: %s", exc)
                self.storage.remove_item(self.storage_key)
                self._movies = []
            return tuple(self._movies)

    def persist(self) -> None:
        """Serialize the whole collection and overwrite the snapshot."""
        with self._lock:
            self._write(self._movies)

    def _write(self, movies: List[MovieRecord]) -> None:
        payload = json.dumps([movie.to_dict() for movie in movies])
        self.storage.set_item(self.storage_key, payload)

    @staticmethod
    def _decode(raw: str) -> List[MovieRecord]:
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageCorruptionError(f"snapshot is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StorageCorruptionError("snapshot is not a JSON array")
        try:
            movies = [MovieRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StorageCorruptionError(f"snapshot holds an invalid movie: {exc!r}") from exc
        if len({movie.id for movie in movies}) != len(movies):
            raise StorageCorruptionError("snapshot holds duplicate movie ids")
        return movies
