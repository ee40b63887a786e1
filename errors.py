"""Error types shared by the proxy, resolver and collection store.

Every error carries an HTTP-ish ``status_code`` so the JSON routes and the
proxy can turn it into a response without a lookup table.
"""
from __future__ import annotations


class MovieShelfError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(MovieShelfError):
    """The TMDB credential (or another required setting) is missing."""


class ValidationError(MovieShelfError):
    status_code = 400


class NotFoundError(MovieShelfError):
    status_code = 404


class UpstreamError(MovieShelfError):
    """TMDB (or the proxy in front of it) answered with a non-2xx status."""


class DuplicateError(MovieShelfError):
    status_code = 409


class StorageCorruptionError(MovieShelfError):
    """The durable snapshot could not be decoded."""


class ResolveInProgressError(MovieShelfError):
    status_code = 409
