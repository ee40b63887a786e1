"""Resolve a movie title into a fully detailed ``MovieRecord``.

Searches TMDB through the proxy, keeps the top-ranked match, then asks for
that movie's details. A failed details call is not fatal: the record is
built from the search result instead.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from errors import NotFoundError, ResolveInProgressError, UpstreamError, ValidationError
from models.models import MovieRecord

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
PLACEHOLDER_POSTER = "/static/placeholder.svg"

NOT_FOUND_MESSAGE = "Movie not found. Try adding the year for more specific results."

# Friendlier wording for search failures the user can act on.
UPSTREAM_HINTS = {
    401: "API key authentication failed. Please check your API key configuration.",
    403: "Access to TMDB API is forbidden. Your API key might have restrictions.",
    404: "TMDB API endpoint not found. Please check the API URL.",
}


def build_movie_record(
    data: Mapping[str, Any],
    poster_base_url: str = POSTER_BASE_URL,
    placeholder_poster: str = PLACEHOLDER_POSTER,
) -> MovieRecord:
    """Normalize a TMDB search result or details object."""
    release_date = data.get("release_date") or ""
    poster_path = data.get("poster_path")
    return MovieRecord(
        id=int(data["id"]),
        title=data.get("title") or "",
        year=release_date[:4] if release_date else "Unknown",
        poster_url=f"{poster_base_url}{poster_path}" if poster_path else placeholder_poster,
        overview=data.get("overview") or "",
        director=data.get("director") or "Unknown",
    )


class Resolver:
    """Turns ``(title, year)`` into a MovieRecord, one lookup at a time."""

    def __init__(
        self,
        client,
        poster_base_url: str = POSTER_BASE_URL,
        placeholder_poster: str = PLACEHOLDER_POSTER,
    ):
        """
        Args:
            client: A proxy client with ``get(endpoint, params)``.
            poster_base_url: Image CDN prefix for poster paths.
            placeholder_poster: Poster used when TMDB has none.
        """
        self.client = client
        self.poster_base_url = poster_base_url
        self.placeholder_poster = placeholder_poster
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def resolve(self, title: str, year: Optional[str] = None) -> MovieRecord:
        """Look up ``title`` and return its record.

        Raises:
            ValidationError: If the title is blank.
            NotFoundError: If the search has no results.
            UpstreamError: If the search itself fails.
            ResolveInProgressError: If another lookup is still running.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Please enter a movie title")
        year = (year or "").strip() or None

        if not self._in_flight.acquire(blocking=False):
            raise ResolveInProgressError("A movie lookup is already in progress")
        try:
            match = self._search(title, year)
            details = self._details(match)
            return build_movie_record(details or match, self.poster_base_url, self.placeholder_poster)
        finally:
            self._in_flight.release()

    def _search(self, title: str, year: Optional[str]) -> Dict[str, Any]:
        params = {"query": title, "include_adult": "false"}
        if year:
            params["year"] = year
        try:
            data = self.client.get("search/movie", params)
        except UpstreamError as exc:
            hint = UPSTREAM_HINTS.get(exc.status_code)
            if hint:
                raise UpstreamError(hint, status_code=exc.status_code) from exc
            raise

        results = data.get("results") if isinstance(data, dict) else None
        logger.info("TMDB search for %r (year=%s): %d results", title, year, len(results or []))
        if not results:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return results[0]

    def _details(self, match: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the details object, or None if it could not be fetched."""
        try:
            details = self.client.get(f"movie/{match['id']}")
        except Exception as exc:
            logger.warning(
                "Could not fetch detailed movie information for id=%s, using basic info instead: %s",
                match.get("id"),
                exc,
            )
            return None
        if not isinstance(details, dict) or "id" not in details:
            logger.warning("Unexpected TMDB details payload for id=%s, using basic info instead", match.get("id"))
            return None
        return details
