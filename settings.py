"""Runtime configuration for Movie Shelf.

Values come from the environment (a ``.env`` file is loaded if present) and
are copied into ``app.config`` by ``create_app``.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent.resolve()

load_dotenv()

DATA_DIR = BASE_DIR / "data"
STATIC_DIR = BASE_DIR / "static"

TMDB_API_KEY = os.getenv("TMDB_API_KEY")
TMDB_API_URL = os.getenv("TMDB_API_URL", "https://api.themoviedb.org/3")
POSTER_BASE_URL = os.getenv("POSTER_BASE_URL", "https://image.tmdb.org/t/p/w500")
PLACEHOLDER_POSTER = os.getenv("PLACEHOLDER_POSTER", "/static/placeholder.svg")
TMDB_REQUEST_TIMEOUT = float(os.getenv("TMDB_REQUEST_TIMEOUT", "10"))

# Leave unset to resolve movies through the in-process proxy.
PROXY_BASE_URL = os.getenv("PROXY_BASE_URL")

COLLECTION_STORAGE_KEY = os.getenv("COLLECTION_STORAGE_KEY", "movieCollection")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'movie_shelf.sqlite3'}")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def as_config() -> dict:
    """Return the settings as a dict suitable for ``app.config.update``."""
    return {
        "SECRET_KEY": SECRET_KEY,
        "SQLALCHEMY_DATABASE_URI": DATABASE_URL,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "TMDB_API_KEY": TMDB_API_KEY,
        "TMDB_API_URL": TMDB_API_URL,
        "POSTER_BASE_URL": POSTER_BASE_URL,
        "PLACEHOLDER_POSTER": PLACEHOLDER_POSTER,
        "TMDB_REQUEST_TIMEOUT": TMDB_REQUEST_TIMEOUT,
        "PROXY_BASE_URL": PROXY_BASE_URL,
        "COLLECTION_STORAGE_KEY": COLLECTION_STORAGE_KEY,
        "LOG_LEVEL": LOG_LEVEL,
    }
