# core/plex.py
from typing import List, Optional

import requests

from .debug import debug_log
from .models import MediaKind, PlayState, Snapshot


USER_AGENT = "Pleyx/1.0"

_KINDS = {
    "movie": MediaKind.MOVIE,
    "episode": MediaKind.EPISODE,
    "track": MediaKind.TRACK,
}

_STATES = {
    "playing": PlayState.PLAYING,
    "paused": PlayState.PAUSED,
    "buffering": PlayState.BUFFERING,
}


class PlexError(Exception):
    pass


def _player_state(item: dict) -> str:
    player = item.get("Player") or {}
    return (player.get("state") or "") if isinstance(player, dict) else ""


def select_session(sessions: List[dict]) -> Optional[dict]:
    """
    Newest-first scan: a playing session wins outright, otherwise the last
    listed session is used.
    """
    for item in reversed(sessions):
        if _player_state(item) == "playing":
            return item
    return sessions[-1] if sessions else None


def _imdb_id(item: dict) -> Optional[str]:
    for guid in item.get("Guid") or []:
        gid = guid.get("id", "") if isinstance(guid, dict) else ""
        if gid.startswith("imdb://"):
            return gid[len("imdb://"):]
    return None


def _art_path(item: dict, kind: MediaKind) -> Optional[str]:
    if kind is MediaKind.EPISODE:
        # series art first
        keys = ("grandparentArt", "art", "thumb")
    elif kind is MediaKind.TRACK:
        # album art first
        keys = ("parentThumb", "grandparentThumb")
    else:
        keys = ("art", "thumb")
    for key in keys:
        if item.get(key):
            return item[key]
    return None


def _opt_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def snapshot_from_metadata(item: dict) -> Snapshot:
    kind = _KINDS.get(item.get("type") or "", MediaKind.UNKNOWN)
    return Snapshot(
        title=item.get("title") or "Unknown",
        media_kind=kind,
        play_state=_STATES.get(_player_state(item), PlayState.STOPPED),
        year=_opt_int(item.get("year")),
        grandparent_title=item.get("grandparentTitle"),
        parent_title=item.get("parentTitle"),
        season_number=_opt_int(item.get("parentIndex")),
        episode_number=_opt_int(item.get("index")),
        imdb_id=_imdb_id(item),
        art_path=_art_path(item, kind),
        genres=tuple(g["tag"] for g in item.get("Genre") or [] if isinstance(g, dict) and g.get("tag")),
        duration_ms=max(0, _opt_int(item.get("duration")) or 0),
        progress_ms=max(0, _opt_int(item.get("viewOffset")) or 0),
    )


class PlexClient:
    def __init__(self, server_url: str, token: str, session: Optional[requests.Session] = None, timeout: float = 10):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._http = session or requests.Session()
        self._http.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

    def _get(self, path: str) -> requests.Response:
        r = self._http.get(
            self.server_url + path,
            params={"X-Plex-Token": self.token},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r

    def test_connection(self) -> bool:
        try:
            self._get("/")
            return True
        except Exception as e:
            print(f"[Plex] Connection test failed: {e}")
            return False

    def get_sessions(self) -> List[dict]:
        try:
            data = self._get("/status/sessions").json()
        except requests.RequestException as e:
            raise PlexError(f"session request failed: {e}") from e
        except ValueError as e:
            raise PlexError(f"invalid session JSON: {e}") from e

        container = data.get("MediaContainer") if isinstance(data, dict) else None
        if not isinstance(container, dict):
            raise PlexError("response has no MediaContainer")
        return container.get("Metadata") or []

    def get_now_playing(self) -> Optional[Snapshot]:
        item = select_session(self.get_sessions())
        if item is None:
            return None

        np = snapshot_from_metadata(item)
        debug_log(
            f"Now playing: {np.display_title()} ({np.state_text()}) "
            f"IMDB: {np.imdb_id or 'none'} Art: {'yes' if np.art_path else 'no'}"
        )
        return np
