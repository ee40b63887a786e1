"""TMDB request proxy.

Forwards browser requests to The Movie Database, appending the server-held
API key so it never reaches the client. A single ``ProxyFunction`` serves
every endpoint; how the upstream endpoint is read from the request path is
decided by a pluggable strategy.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence
from urllib.parse import quote, urlencode

import requests

from errors import ConfigurationError, MovieShelfError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "search/movie"
MASK = "API_KEY_HIDDEN"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Content-Type": "application/json",
}


def mask_credential(text: str, api_key: Optional[str]) -> str:
    """Replace every occurrence of ``api_key``, raw or URL-encoded, in ``text``."""
    if not api_key:
        return text
    for form in sorted({api_key, quote(api_key), quote(api_key, safe="")}, key=len, reverse=True):
        text = text.replace(form, MASK)
    return text


@dataclass
class ProxyRequest:
    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProxyResponse:
    status_code: int
    body: Any
    headers: Dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))


# ---------------------------------------------------------------------------
# Endpoint extraction strategies
# ---------------------------------------------------------------------------

class PathStrategy:
    """Maps a request path to a TMDB endpoint such as ``search/movie``.

    ``extract`` returns None when the path does not follow the convention.
    """

    def extract(self, path: str) -> Optional[str]:
        raise NotImplementedError


class PrefixStrategy(PathStrategy):
    """Everything after ``marker`` in the path is the endpoint."""

    def __init__(self, marker: str):
        self.marker = marker

    def extract(self, path: str) -> Optional[str]:
        if self.marker not in path:
            return None
        endpoint = path.split(self.marker, 1)[1].strip("/")
        return endpoint or None


class ApiPrefixStrategy(PrefixStrategy):
    """Rewritten ``/api/<endpoint>`` paths."""

    def __init__(self):
        super().__init__("/api/")


class FunctionPathStrategy(PrefixStrategy):
    """Direct function paths, ``/functions/<name>/<endpoint>``."""

    def __init__(self, function_name: str = "tmdb-api"):
        super().__init__(f"/functions/{function_name}/")


class FixedEndpointStrategy(PathStrategy):
    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    def extract(self, path: str) -> Optional[str]:
        return self.endpoint


class MovieDetailsStrategy(PathStrategy):
    """The last path segment is a numeric movie id."""

    def extract(self, path: str) -> Optional[str]:
        movie_id = path.rstrip("/").split("/")[-1]
        if not movie_id.isdigit():
            raise ValidationError("Invalid or missing movie ID")
        return f"movie/{movie_id}"


class FirstMatchStrategy(PathStrategy):
    """Try each strategy in turn, falling back to ``default``."""

    def __init__(self, strategies: Iterable[PathStrategy], default: str = DEFAULT_ENDPOINT):
        self.strategies = list(strategies)
        self.default = default

    def extract(self, path: str) -> Optional[str]:
        for strategy in self.strategies:
            endpoint = strategy.extract(path)
            if endpoint:
                return endpoint
        logger.info("No endpoint found in path %r, using default %r", path, self.default)
        return self.default


# ---------------------------------------------------------------------------
# Proxy
# ---------------------------------------------------------------------------

class ProxyFunction:
    """Stateless request handler in front of the TMDB API."""

    def __init__(
        self,
        api_key: Optional[str],
        strategy: PathStrategy,
        *,
        base_url: str = "https://api.themoviedb.org/3",
        required_params: Sequence[str] = (),
        timeout: float = 10,
        http=requests,
    ):
        """Configure a proxy.

        Args:
            api_key: The TMDB credential; checked per request.
            strategy: Reads the upstream endpoint from the request path.
            base_url: TMDB API root.
            required_params: Query parameters the caller must supply.
            timeout: Seconds to wait for TMDB.
            http: Object with a ``get(url, timeout=...)`` method, normally
                the ``requests`` module or a ``requests.Session``.
        """
        self.api_key = api_key
        self.strategy = strategy
        self.base_url = base_url.rstrip("/")
        self.required_params = tuple(required_params)
        self.timeout = timeout
        self.http = http

    def handle(self, request: ProxyRequest) -> ProxyResponse:
        """Serve one request. Never raises."""
        if request.method.upper() == "OPTIONS":
            return ProxyResponse(200, {})

        try:
            url = self.build_url(request)
            logger.info("Proxying TMDB request %s", mask_credential(url, self.api_key))
            response = self.http.get(url, timeout=self.timeout)
            response.raise_for_status()
            return ProxyResponse(200, response.json())
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else 500
            message = _status_message(exc.response) or str(exc)
            return self._error(status, message, request)
        except MovieShelfError as exc:
            return self._error(500, exc.message, request)
        except Exception as exc:  # network failures, undecodable bodies
            return self._error(500, str(exc) or "Unknown error occurred", request)

    def build_url(self, request: ProxyRequest) -> str:
        """Return the full upstream URL, credential included.

        Raises:
            ConfigurationError: If no credential is configured.
            ValidationError: If the path or query is unusable.
        """
        if not self.api_key:
            raise ConfigurationError("TMDB API key not configured")

        endpoint = self.strategy.extract(request.path)
        if not endpoint:
            raise ValidationError("Missing TMDB endpoint")

        missing = [name for name in self.required_params if not request.query.get(name)]
        if missing:
            raise ValidationError("Missing query parameter")

        params: Dict[str, str] = {"api_key": self.api_key}
        params.update(
            (key, value) for key, value in request.query.items() if key != "api_key"
        )
        return f"{self.base_url}/{endpoint}?{urlencode(params, quote_via=quote)}"

    def _error(self, status: int, message: str, request: ProxyRequest) -> ProxyResponse:
        message = mask_credential(message, self.api_key)
        logger.error("TMDB proxy error for %s (%s): %s", request.path, status, message)
        return ProxyResponse(status, {"error": message})


def _status_message(response: Optional[requests.Response]) -> Optional[str]:
    """Pull TMDB's ``status_message`` out of an error body, if any."""
    if response is None:
        return None
    try:
        body: Mapping[str, Any] = response.json()
    except ValueError:
        return None
    if isinstance(body, Mapping):
        return body.get("status_message")
    return None
