"""Clients the resolver uses to reach TMDB through the proxy.

``LocalProxyClient`` calls a ``ProxyFunction`` in-process; ``HttpProxyClient``
talks to a deployed proxy over HTTP. Both return the decoded JSON body on
success and raise ``UpstreamError`` otherwise.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from errors import UpstreamError
from tmdb_proxy.proxy import ProxyFunction, ProxyRequest

logger = logging.getLogger(__name__)


def _error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        return body.get("error") or body.get("status_message") or fallback
    return fallback


class LocalProxyClient:
    """Calls the proxy directly, without an HTTP round-trip."""

    def __init__(self, proxy_factory: Callable[[], ProxyFunction]):
        """
        Args:
            proxy_factory: Returns a ``ProxyFunction`` that reads the endpoint
                from ``/api/<endpoint>`` paths. Called once per request so
                configuration changes are picked up.
        """
        self.proxy_factory = proxy_factory

    def get(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        request = ProxyRequest("GET", f"/api/{endpoint.strip('/')}", dict(params or {}))
        response = self.proxy_factory().handle(request)
        if response.status_code >= 400:
            message = _error_message(response.body, f"Proxy returned {response.status_code}")
            raise UpstreamError(message, status_code=response.status_code)
        return response.body


class HttpProxyClient:
    """Calls a proxy deployed at ``base_url`` using the ``/api/`` convention."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def get(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}/api/{endpoint.strip('/')}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(f"Proxy request failed: {exc}", status_code=502) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = _error_message(body, resp.reason or f"Proxy returned {resp.status_code}")
            raise UpstreamError(message, status_code=resp.status_code)
        if body is None:
            raise UpstreamError("Proxy returned a non-JSON body", status_code=502)
        return body
