import pytest
import requests

from conftest import API_KEY, MATRIX_DETAILS, MATRIX_SEARCH, FakeHttp
from errors import ValidationError
from tmdb_proxy.proxy import (
    CORS_HEADERS,
    ApiPrefixStrategy,
    FirstMatchStrategy,
    FixedEndpointStrategy,
    FunctionPathStrategy,
    MovieDetailsStrategy,
    ProxyFunction,
    ProxyRequest,
    mask_credential,
)


def passthrough(http, api_key=API_KEY):
    strategy = FirstMatchStrategy([FunctionPathStrategy("tmdb-api"), ApiPrefixStrategy()])
    return ProxyFunction(api_key, strategy, http=http)


def test_options_returns_empty_body_without_credential():
    http = FakeHttp()
    result = passthrough(http, api_key=None).handle(ProxyRequest("OPTIONS", "/api/search/movie"))

    assert result.status_code == 200
    assert result.body == {}
    assert result.headers == CORS_HEADERS
    assert http.calls == []


def test_missing_credential_is_a_configuration_error():
    http = FakeHttp()
    result = passthrough(http, api_key="").handle(
        ProxyRequest("GET", "/api/search/movie", {"query": "Alien"})
    )

    assert result.status_code == 500
    assert result.body == {"error": "TMDB API key not configured"}
    assert result.headers["Access-Control-Allow-Origin"] == "*"
    assert http.calls == []


def test_success_returns_upstream_body_verbatim(fake_http):
    result = passthrough(fake_http).handle(
        ProxyRequest("GET", "/api/search/movie", {"query": "The Matrix", "year": "1999"})
    )

    assert result.status_code == 200
    assert result.body == MATRIX_SEARCH
    url = fake_http.calls[-1]
    assert url.startswith(f"https://api.themoviedb.org/3/search/movie?api_key={API_KEY}&")
    assert "query=The%20Matrix" in url
    assert fake_http.last_query() == {"api_key": API_KEY, "query": "The Matrix", "year": "1999"}


def test_caller_cannot_override_api_key(fake_http):
    passthrough(fake_http).handle(
        ProxyRequest("GET", "/api/search/movie", {"query": "x", "api_key": "stolen"})
    )
    assert fake_http.last_query()["api_key"] == API_KEY


def test_upstream_401_keeps_status_and_message():
    http = FakeHttp()
    http.add(
        "search/movie",
        status=401,
        body={"status_code": 7, "status_message": "Invalid API key: You must be granted a valid key."},
    )
    result = passthrough(http).handle(ProxyRequest("GET", "/api/search/movie", {"query": "Alien"}))

    assert result.status_code == 401
    assert result.body["error"] == "Invalid API key: You must be granted a valid key."
    assert API_KEY not in str(result.body)


def test_upstream_error_without_status_message_uses_exception_text():
    http = FakeHttp()
    http.add("movie/1", status=503, body={"unexpected": True})
    result = passthrough(http).handle(ProxyRequest("GET", "/api/movie/1"))

    assert result.status_code == 503
    assert "503" in result.body["error"]
    assert API_KEY not in result.body["error"]


def test_transport_failure_is_masked_and_defaults_to_500():
    http = FakeHttp()
    http.add(
        "search/movie",
        exc=requests.ConnectionError(
            f"Max retries exceeded with url: /3/search/movie?api_key={API_KEY}&query=x"
        ),
    )
    result = passthrough(http).handle(ProxyRequest("GET", "/api/search/movie", {"query": "x"}))

    assert result.status_code == 500
    assert API_KEY not in result.body["error"]
    assert "API_KEY_HIDDEN" in result.body["error"]


def test_credential_is_not_logged(fake_http, caplog):
    caplog.set_level("INFO")
    passthrough(fake_http).handle(ProxyRequest("GET", "/api/search/movie", {"query": "x"}))

    assert "API_KEY_HIDDEN" in caplog.text
    assert API_KEY not in caplog.text


def test_search_function_requires_query(fake_http):
    proxy = ProxyFunction(
        API_KEY, FixedEndpointStrategy("search/movie"), required_params=("query",), http=fake_http
    )
    result = proxy.handle(ProxyRequest("GET", "/functions/search", {"year": "1999"}))

    assert result.status_code == 500
    assert result.body == {"error": "Missing query parameter"}
    assert fake_http.calls == []


def test_movie_details_function(fake_http):
    proxy = ProxyFunction(API_KEY, MovieDetailsStrategy(), http=fake_http)

    ok = proxy.handle(ProxyRequest("GET", "/functions/movie/603"))
    bad = proxy.handle(ProxyRequest("GET", "/functions/movie/abc"))

    assert ok.body == MATRIX_DETAILS
    assert bad.status_code == 500
    assert bad.body == {"error": "Invalid or missing movie ID"}


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/functions/tmdb-api/search/movie", "search/movie"),
        ("/.netlify/functions/tmdb-api/movie/603", "movie/603"),
        ("/api/movie/603", "movie/603"),
        ("/somewhere/else", "search/movie"),
        ("/api/", "search/movie"),
    ],
)
def test_endpoint_extraction(path, expected):
    strategy = FirstMatchStrategy([FunctionPathStrategy("tmdb-api"), ApiPrefixStrategy()])
    assert strategy.extract(path) == expected


def test_movie_details_strategy_rejects_missing_id():
    with pytest.raises(ValidationError):
        MovieDetailsStrategy().extract("/functions/movie/")


def test_mask_credential():
    assert mask_credential("a?api_key=k3y&b", "k3y") == "a?api_key=API_KEY_HIDDEN&b"
    assert mask_credential("nothing here", None) == "nothing here"


def test_mask_credential_hides_url_encoded_key(caplog):
    key = "k3y with/space+plus"
    http = FakeHttp()
    http.add("search/movie", status=401, body={"status_message": None})
    caplog.set_level("INFO")

    result = passthrough(http, api_key=key).handle(
        ProxyRequest("GET", "/api/search/movie", {"query": "x"})
    )

    assert result.status_code == 401
    assert "API_KEY_HIDDEN" in result.body["error"]
    for leaked in (key, "k3y%20with", "space%2Bplus"):
        assert leaked not in result.body["error"]
        assert leaked not in caplog.text
