"""Flask routes exposing the TMDB proxy.

Automatic OPTIONS handling is disabled on every route so CORS preflight
requests reach the proxy and get its headers.
"""
from __future__ import annotations

import json
from typing import Optional

from flask import Blueprint, Flask, Response, current_app, request

from tmdb_proxy.proxy import (
    ApiPrefixStrategy,
    FirstMatchStrategy,
    FixedEndpointStrategy,
    FunctionPathStrategy,
    MovieDetailsStrategy,
    PathStrategy,
    ProxyFunction,
    ProxyRequest,
)

bp = Blueprint("tmdb_proxy", __name__)

PROXY_METHODS = ["GET", "OPTIONS"]


def make_proxy(strategy: PathStrategy, required_params=(), app: Optional[Flask] = None) -> ProxyFunction:
    """Build a ProxyFunction from the app's configuration (default: current app)."""
    if app is None:
        app = current_app
    return ProxyFunction(
        app.config.get("TMDB_API_KEY"),
        strategy,
        base_url=app.config["TMDB_API_URL"],
        required_params=required_params,
        timeout=app.config["TMDB_REQUEST_TIMEOUT"],
        http=app.tmdb_http,  # type: ignore[attr-defined]
    )


def passthrough_strategy() -> PathStrategy:
    return FirstMatchStrategy([FunctionPathStrategy("tmdb-api"), ApiPrefixStrategy()])


def _serve(proxy: ProxyFunction) -> Response:
    result = proxy.handle(
        ProxyRequest(request.method, request.path, request.args.to_dict(flat=True))
    )
    return Response(json.dumps(result.body), status=result.status_code, headers=result.headers)


@bp.route("/api/<path:endpoint>", methods=PROXY_METHODS, provide_automatic_options=False)
@bp.route("/functions/tmdb-api/<path:endpoint>", methods=PROXY_METHODS, provide_automatic_options=False)
def tmdb_api(endpoint: str):
    """Generic passthrough: ``/api/search/movie?query=...`` and friends."""
    return _serve(make_proxy(passthrough_strategy()))


@bp.route("/functions/search", methods=PROXY_METHODS, provide_automatic_options=False)
def search():
    """Movie search; ``query`` is required."""
    return _serve(make_proxy(FixedEndpointStrategy("search/movie"), required_params=("query",)))


@bp.route("/functions/movie/<movie_id>", methods=PROXY_METHODS, provide_automatic_options=False)
def movie(movie_id: str):
    """Movie details by numeric id."""
    return _serve(make_proxy(MovieDetailsStrategy()))
