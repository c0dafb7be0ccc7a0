# core/omdb.py
import dataclasses
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import requests

from .debug import debug_log
from .models import MediaKind, Snapshot


OMDB_URL = "https://www.omdbapi.com/"
_HTTP = requests.Session()


@dataclass(frozen=True)
class OmdbResult:
    imdb_id: Optional[str] = None
    poster_url: Optional[str] = None
    imdb_rating: Optional[str] = None
    rotten_tomatoes_rating: Optional[str] = None


def _value(data: dict, key: str) -> Optional[str]:
    value = (data.get(key) or "").strip()
    if not value or value == "N/A":
        return None
    return value


def parse_response(data: dict) -> Optional[OmdbResult]:
    if str(data.get("Response", "")).lower() != "true":
        return None

    imdb_rating = None
    rt_rating = None
    for rating in data.get("Ratings") or []:
        source = rating.get("Source", "")
        if source == "Internet Movie Database":
            imdb_rating = rating.get("Value") or None
        elif source == "Rotten Tomatoes":
            rt_rating = rating.get("Value") or None

    return OmdbResult(
        imdb_id=_value(data, "imdbID"),
        poster_url=_value(data, "Poster"),
        imdb_rating=imdb_rating,
        rotten_tomatoes_rating=rt_rating,
    )


# Exceptions propagate out of the cached function so network errors are retried
# on the next poll; only real answers (including "not found") are memoized.
@lru_cache(maxsize=256)
def _lookup_cached(api_key: str, title: str, year: Optional[int], series: bool) -> Optional[OmdbResult]:
    params = {"apikey": api_key, "t": title}
    if year:
        params["y"] = str(year)
    if series:
        params["type"] = "series"

    r = _HTTP.get(OMDB_URL, params=params, timeout=6)
    r.raise_for_status()
    return parse_response(r.json())


def lookup(api_key: str, title: str, year: Optional[int] = None, series: bool = False) -> Optional[OmdbResult]:
    title = (title or "").strip()
    if not api_key or not title:
        return None
    try:
        return _lookup_cached(api_key, title, year, series)
    except Exception as e:
        debug_log(f"OMDb lookup failed for '{title}': {e}")
        return None


def enrich(np: Snapshot, api_key: str) -> Snapshot:
    """Backfill IMDb id, poster and ratings. Tracks are left alone."""
    if not api_key or np.media_kind is MediaKind.TRACK:
        return np

    if np.media_kind is MediaKind.EPISODE:
        result = lookup(api_key, np.grandparent_title or np.title, series=True)
    else:
        result = lookup(api_key, np.title, np.year)

    if result is None:
        return np

    debug_log(f"OMDb match for '{np.title}': {result.imdb_id}")
    return dataclasses.replace(
        np,
        imdb_id=np.imdb_id or result.imdb_id,
        poster_url=np.poster_url or result.poster_url,
        imdb_rating=np.imdb_rating or result.imdb_rating,
        rotten_tomatoes_rating=np.rotten_tomatoes_rating or result.rotten_tomatoes_rating,
    )
