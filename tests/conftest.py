import json
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from app import create_app

API_KEY = "secret-key-123"

MATRIX_SEARCH = {
    "page": 1,
    "results": [
        {
            "id": 603,
            "title": "The Matrix",
            "release_date": "1999-03-30",
            "poster_path": "/matrix.jpg",
            "overview": "A hacker learns the truth.",
        },
        {
            "id": 604,
            "title": "The Matrix Reloaded",
            "release_date": "2003-05-15",
            "poster_path": "/reloaded.jpg",
            "overview": "",
        },
    ],
}

MATRIX_DETAILS = {
    "id": 603,
    "title": "The Matrix",
    "release_date": "1999-03-31",
    "poster_path": "/matrix-hd.jpg",
    "overview": "Set in the 22nd century, The Matrix tells the story of a computer hacker.",
    "runtime": 136,
}


def make_response(status, body, url="https://api.themoviedb.org/3/"):
    """Build a real requests.Response so raise_for_status/json behave normally."""
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    resp.encoding = "utf-8"
    resp.url = url
    return resp


class FakeHttp:
    """Stands in for ``requests``; answers by TMDB endpoint."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, endpoint, status=200, body=None, exc=None):
        self.routes[endpoint.strip("/")] = (status, body, exc)

    def get(self, url, timeout=None):
        self.calls.append(url)
        parts = urlsplit(url)
        endpoint = parts.path.split("/3/", 1)[-1].strip("/")
        if endpoint not in self.routes:
            return make_response(404, {"status_message": "The resource you requested could not be found."}, url)
        status, body, exc = self.routes[endpoint]
        if exc is not None:
            raise exc
        return make_response(status, body, url)

    def last_query(self):
        return {k: v[0] for k, v in parse_qs(urlsplit(self.calls[-1]).query).items()}


class MemoryStorage:
    """Dict-backed stand-in for SnapshotStorage."""

    def __init__(self, items=None):
        self.items = dict(items or {})
        self.writes = 0

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.writes += 1
        self.items[key] = value

    def remove_item(self, key):
        self.items.pop(key, None)


@pytest.fixture
def fake_http():
    http = FakeHttp()
    http.add("search/movie", body=MATRIX_SEARCH)
    http.add("movie/603", body=MATRIX_DETAILS)
    return http


@pytest.fixture
def app(fake_http, tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "TMDB_API_KEY": API_KEY,
            "PROXY_BASE_URL": None,
            "COLLECTION_STORAGE_KEY": "movieCollection",
        }
    )
    app.tmdb_http = fake_http
    app.static_folder = str(tmp_path / "static")
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
