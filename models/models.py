"""Data models for Movie Shelf.

Defines the ``MovieRecord`` value type kept in a collection, the SQLAlchemy
key/value table that holds the durable collection snapshot, and a helper to
initialize the database within a Flask application.
"""
from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass
from typing import Any, Dict

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


@dataclass(frozen=True)
class MovieRecord:
    """A single movie in the user's collection."""

    id: int
    title: str
    year: str = "Unknown"
    poster_url: str = ""
    overview: str = ""
    director: str = "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the snapshot's camelCase keys."""
        data = asdict(self)
        data["posterUrl"] = data.pop("poster_url")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MovieRecord":
        """Build a record from its serialized form.

        Accepts the legacy ``poster`` key as well as ``posterUrl``.

        Raises:
            KeyError: If ``id`` or ``title`` is missing.
            TypeError, ValueError: If ``id`` is not an integer.
        """
        movie_id = data["id"]
        if isinstance(movie_id, bool) or not isinstance(movie_id, int):
            raise TypeError(f"movie id must be an integer, got {movie_id!r}")
        return cls(
            id=movie_id,
            title=str(data["title"]),
            year=str(data.get("year") or "Unknown"),
            poster_url=str(data.get("posterUrl") or data.get("poster") or ""),
            overview=str(data.get("overview") or ""),
            director=str(data.get("director") or "Unknown"),
        )


class StorageEntry(db.Model):
    """One named value in the durable key/value store."""

    __tablename__ = "storage_entries"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
    )

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"<StorageEntry key={self.key!r} size={len(self.value or '')}>"


def init_db(app: Flask) -> None:
    """Bind the SQLAlchemy db to the app and create tables if needed.

    Args:
        app: The Flask application to bind to.
    """
    db.init_app(app)
    with app.app_context():
        db.create_all()
