"""Movie Shelf
----------------
A Flask web application for keeping a personal collection of movies. Movie
metadata and posters come from The Movie Database (TMDB) through a small
proxy that keeps the API key on the server.

Features:
    - Add a movie by title (and optional year); the top TMDB match is used
    - Remove movies from the collection
    - Collection persisted to a durable snapshot after every change
    - TMDB proxy routes (/api/..., /functions/...) with CORS headers
    - Minimal JSON API and a /debug diagnostics endpoint
    - build-config command that writes static/api-config.js

Run locally:
    1) Create and activate a virtualenv
    2) pip install -e .
    3) Create a .env file with TMDB_API_KEY=...
    4) flask --app app run
    5) Visit http://127.0.0.1:5000
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import requests
from flask import (
    Flask,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

import build_config
import settings
from data_manager.collection_store import CollectionStore
from data_manager.snapshot_storage import SnapshotStorage
from errors import MovieShelfError, UpstreamError
from models.models import db, init_db
from tmdb_proxy.client import HttpProxyClient, LocalProxyClient
from tmdb_proxy.proxy import FixedEndpointStrategy, ProxyRequest
from tmdb_proxy.resolver import Resolver
from tmdb_proxy.routes import bp as tmdb_proxy_bp
from tmdb_proxy.routes import make_proxy, passthrough_strategy

logger = logging.getLogger(__name__)


def configure_logging(app: Flask) -> None:
    """Set up root and app loggers from the LOG_LEVEL setting."""
    level = str(app.config.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for common HTTP errors.

    Args:
        app: The Flask application.
    """

    @app.errorhandler(404)
    def page_not_found(error):  # type: ignore[override]
        return render_template("404.html"), 404

    @app.errorhandler(500)
    def internal_error(error):  # type: ignore[override]
        return render_template("500.html"), 500


def register_routes(app: Flask) -> None:
    """Attach the collection page and its add/remove form handlers.

    Args:
        app: The Flask application.
    """

    @app.route("/", methods=["GET"])
    def index():
        """Home page: the collection plus the add-movie form."""
        api_config = Path(app.static_folder or "static") / build_config.CONFIG_FILENAME
        return render_template(
            "index.html",
            movies=app.collection_store.snapshot(),
            api_config_present=api_config.exists(),
            api_key_configured=bool(app.config.get("TMDB_API_KEY")),
        )

    @app.route("/movies", methods=["POST"])
    def add_movie():
        """Resolve the submitted title on TMDB and add it to the collection.

        Form Data:
            title (str): The movie title to search for.
            year (str): Release year to narrow the search (optional).

        Returns:
            Response: Redirect back to the home page.
        """
        title = request.form.get("title") or ""
        year = request.form.get("year") or None
        try:
            record = app.resolver.resolve(title, year)
            app.collection_store.add(record)
            flash(f"Added “{record.title}” ({record.year}).", "success")
        except MovieShelfError as exc:
            flash(exc.message, "error")
        return redirect(url_for("index"))

    @app.route("/movies/<int:movie_id>/delete", methods=["POST"])
    def delete_movie(movie_id: int):
        """Remove a movie from the collection."""
        if app.collection_store.remove(movie_id):
            flash("Movie removed.", "success")
        return redirect(url_for("index"))


def register_api(app: Flask) -> None:
    """Attach the JSON API and the diagnostics endpoint."""

    @app.route("/collection", methods=["GET"])
    def api_collection():
        """Return the collection in display order."""
        movies = [m.to_dict() for m in app.collection_store.snapshot()]
        return {"movies": movies}, 200

    @app.route("/collection", methods=["POST"])
    def api_add_movie():
        """Add a movie via JSON payload: {"title": "...", "year": "1999"}"""
        payload = request.get_json(silent=True) or {}
        try:
            record = app.resolver.resolve(
                str(payload.get("title") or ""), str(payload.get("year") or "") or None
            )
            app.collection_store.add(record)
        except UpstreamError as exc:
            return {"error": exc.message, "upstream_status": exc.status_code}, 502
        except MovieShelfError as exc:
            return {"error": exc.message}, exc.status_code
        return record.to_dict(), 201

    @app.route("/collection/<int:movie_id>", methods=["DELETE"])
    def api_delete_movie(movie_id: int):
        """Delete a movie by id; unknown ids are ignored."""
        app.collection_store.remove(movie_id)
        return "", 204

    @app.route("/debug", methods=["GET"])
    def debug_info():
        """Report credential status, snapshot size and, with ?test=1, TMDB reachability."""
        api_key = app.config.get("TMDB_API_KEY")
        info = {"api_key_status": "found" if api_key else "missing"}
        if api_key and app.debug:
            info["api_key_masked"] = f"{api_key[:3]}...{api_key[-3:]}"

        raw = SnapshotStorage(db).get_item(app.config["COLLECTION_STORAGE_KEY"])
        if raw is None:
            info["saved_movies"] = 0
        else:
            try:
                info["saved_movies"] = len(json.loads(raw))
            except (ValueError, TypeError) as exc:
                info["storage_error"] = str(exc)

        if request.args.get("test"):
            info["api_test"] = check_tmdb_connection(app)
        return info, 200


def check_tmdb_connection(app: Flask) -> dict:
    """Call TMDB's configuration endpoint through the proxy."""
    proxy = make_proxy(FixedEndpointStrategy("configuration"), app=app)
    result = proxy.handle(ProxyRequest("GET", "/api/configuration"))
    if result.status_code != 200:
        return {"ok": False, "status": result.status_code, "error": result.body.get("error")}
    images = result.body.get("images") or {}
    return {
        "ok": True,
        "secure_base_url": images.get("secure_base_url"),
        "poster_sizes": images.get("poster_sizes") or [],
    }


def build_resolver(app: Flask) -> Resolver:
    """Resolve through a remote proxy if PROXY_BASE_URL is set, else in-process."""
    base_url = app.config.get("PROXY_BASE_URL")
    if base_url:
        client = HttpProxyClient(base_url, timeout=app.config["TMDB_REQUEST_TIMEOUT"])
    else:
        client = LocalProxyClient(lambda: make_proxy(passthrough_strategy(), app=app))
    return Resolver(
        client,
        poster_base_url=app.config["POSTER_BASE_URL"],
        placeholder_poster=app.config["PLACEHOLDER_POSTER"],
    )


def create_app(test_config: Optional[dict] = None) -> Flask:
    """Application factory to create and configure the Flask app.

    Args:
        test_config: Settings overriding the environment (used by tests).

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, static_folder="static", template_folder="templates")

    # Configuration
    app.config.update(settings.as_config())
    if test_config:
        app.config.update(test_config)
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith(f"sqlite:///{settings.DATA_DIR}"):
        settings.DATA_DIR.mkdir(exist_ok=True)

    configure_logging(app)
    if not app.config.get("TMDB_API_KEY"):
        logger.warning("TMDB_API_KEY is not set; TMDB requests will fail until it is configured")

    # Initialize DB, collection store and resolver
    init_db(app)
    app.tmdb_http = requests.Session()  # type: ignore[attr-defined]
    app.collection_store = CollectionStore(  # type: ignore[attr-defined]
        SnapshotStorage(db), app.config["COLLECTION_STORAGE_KEY"]
    )
    with app.app_context():
        app.collection_store.load_all()
    app.resolver = build_resolver(app)  # type: ignore[attr-defined]

    register_error_handlers(app)
    register_routes(app)
    register_api(app)
    app.register_blueprint(tmdb_proxy_bp)

    @app.cli.command("build-config")
    def build_config_command():
        """Write static/api-config.js with the TMDB API key."""
        status = build_config.main(app.static_folder)
        if status:
            raise SystemExit(status)

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
