from __future__ import annotations

import pytest
import requests

from core import omdb
from core.models import MediaKind, PlayState, Snapshot


HEAT = {
    "Response": "True",
    "Title": "Heat",
    "imdbID": "tt0113277",
    "Poster": "https://m.media-amazon.com/heat.jpg",
    "Ratings": [
        {"Source": "Internet Movie Database", "Value": "8.3/10"},
        {"Source": "Rotten Tomatoes", "Value": "88%"},
        {"Source": "Metacritic", "Value": "76/100"},
    ],
}


class FakeResponse:
    def __init__(self, payload, status: int = 200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


@pytest.fixture(autouse=True)
def _clear_cache():
    omdb._lookup_cached.cache_clear()
    yield
    omdb._lookup_cached.cache_clear()


def test_parse_response() -> None:
    result = omdb.parse_response(HEAT)
    assert result == omdb.OmdbResult("tt0113277", "https://m.media-amazon.com/heat.jpg", "8.3/10", "88%")


def test_parse_response_not_found_and_missing_poster() -> None:
    assert omdb.parse_response({"Response": "False", "Error": "Movie not found!"}) is None
    assert omdb.parse_response({"Response": "True", "imdbID": "tt1", "Poster": "N/A"}).poster_url is None


def test_lookup_sends_series_hint_and_memoizes(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(params)
        return FakeResponse(HEAT)

    monkeypatch.setattr(omdb._HTTP, "get", fake_get)

    assert omdb.lookup("key", "Show", series=True).imdb_id == "tt0113277"
    assert omdb.lookup("key", "Show", series=True).imdb_id == "tt0113277"
    assert calls == [{"apikey": "key", "t": "Show", "type": "series"}]


def test_lookup_errors_are_not_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    responses = [requests.ConnectionError("down"), FakeResponse(HEAT)]

    def fake_get(url, params=None, timeout=None):
        item = responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(omdb._HTTP, "get", fake_get)

    assert omdb.lookup("key", "Heat", 1995) is None
    assert omdb.lookup("key", "Heat", 1995).imdb_rating == "8.3/10"


def test_enrich_backfills_missing_fields_only(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = []

    def fake_lookup(api_key, title, year=None, series=False):
        seen.append((title, year, series))
        return omdb.parse_response(HEAT)

    monkeypatch.setattr(omdb, "lookup", fake_lookup)

    episode = Snapshot("Pilot", MediaKind.EPISODE, PlayState.PLAYING, year=2020, grandparent_title="Show", imdb_id="tt9")
    enriched = omdb.enrich(episode, "key")

    assert seen == [("Show", None, True)]
    assert enriched.imdb_id == "tt9"
    assert enriched.poster_url == "https://m.media-amazon.com/heat.jpg"
    assert enriched.rotten_tomatoes_rating == "88%"


def test_enrich_skips_tracks_and_missing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(omdb, "lookup", lambda *a, **k: pytest.fail("lookup should not run"))
    track = Snapshot("Song", MediaKind.TRACK, PlayState.PLAYING)
    movie = Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING)
    assert omdb.enrich(track, "key") is track
    assert omdb.enrich(movie, "") is movie
