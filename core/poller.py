# core/poller.py
import threading
import time
import traceback
from typing import Callable, Optional

from pypresence.types import ActivityType

from .debug import debug_log
from .models import MediaKind, PresenceInfo, Snapshot
from . import omdb


def _noop(*_args) -> None:
    pass


def _movie_state(np: Snapshot) -> str:
    parts = [r for r in (np.imdb_rating, np.rotten_tomatoes_rating) if r]
    if np.genres:
        parts.append(", ".join(np.genres))
    return " • ".join(parts) if parts else np.state_text()


def build_presence(np: Snapshot, artwork_url: str = "") -> PresenceInfo:
    info = PresenceInfo(
        details=np.display_title(),
        is_playing=np.is_playing,
        duration_ms=np.duration_ms,
        progress_ms=np.progress_ms,
        imdb_id=np.imdb_id,
    )

    if np.media_kind is MediaKind.EPISODE:
        info.activity_type = ActivityType.WATCHING
        info.details = np.grandparent_title or "TV Show"
        code = np.episode_code() if np.season_number is not None and np.episode_number is not None else ""
        info.state = f"{code} • {np.title}" if code else np.title
        info.large_image = artwork_url or "tv"
        info.large_text = np.grandparent_title or "Watching TV"
    elif np.media_kind is MediaKind.MOVIE:
        info.activity_type = ActivityType.WATCHING
        info.state = _movie_state(np)
        info.large_image = artwork_url or "movie"
        info.large_text = np.title
    elif np.media_kind is MediaKind.TRACK:
        info.activity_type = ActivityType.LISTENING
        info.details = np.title
        info.state = np.genres[0] if np.genres else "Music"
        info.large_image = artwork_url or "music"
        artist = np.grandparent_title or "Unknown Artist"
        album = np.parent_title or "Unknown Album"
        info.large_text = f"{artist} - {album}"
    else:
        info.activity_type = ActivityType.PLAYING
        info.state = np.state_text()
        info.large_image = "plex"
        info.large_text = "Plex"

    return info


class SessionPoller:
    """
    Polls the session source and mirrors it onto Discord.

    on_now_playing fires only when the change key moves (or playback goes
    away); presence is updated or cleared on every cycle.
    """

    def __init__(
        self,
        source,
        presence,
        artwork=None,
        omdb_api_key: str = "",
        poll_seconds: int = 15,
        on_now_playing: Optional[Callable[[Optional[Snapshot]], None]] = None,
        on_playing: Optional[Callable[[bool], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.source = source
        self.presence = presence
        self.artwork = artwork
        self.omdb_api_key = omdb_api_key
        self.poll_seconds = max(1, int(poll_seconds))

        self._on_now_playing = on_now_playing or _noop
        self._on_playing = on_playing or _noop
        self._on_status = on_status or _noop

        self.last_key = ""
        self._stop = threading.Event()
        self._playing = threading.Event()

    @property
    def playing(self) -> bool:
        return self._playing.is_set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def _set_playing(self, playing: bool) -> None:
        was = self._playing.is_set()
        if playing:
            self._playing.set()
        else:
            self._playing.clear()
        if was != playing:
            self._on_playing(playing)

    def _artwork_for(self, np: Snapshot) -> str:
        # OMDb posters are already public; Plex art has to be re-hosted.
        if np.poster_url:
            return np.poster_url
        if np.art_path and self.artwork is not None:
            return self.artwork.resolve(np.art_path)
        return ""

    def poll_once(self) -> None:
        np = self.source.get_now_playing()

        if np is None:
            if self.last_key:
                self.last_key = ""
                self._set_playing(False)
                self._on_now_playing(None)
                self._on_status("Nothing playing")
                self.presence.clear_presence()
            return

        if self.omdb_api_key:
            np = omdb.enrich(np, self.omdb_api_key)

        key = np.change_key()
        if key != self.last_key:
            self.last_key = key
            self._on_now_playing(np)
            self._on_status(f"{np.state_text()}: {np.display_title()}")

        if np.is_playing:
            self._set_playing(True)
            info = build_presence(np, self._artwork_for(np))
            if not self.presence.update_presence(info):
                debug_log("Presence update failed")
        else:
            self._set_playing(False)
            self.presence.clear_presence()

    def sleep(self) -> None:
        deadline = time.monotonic() + self.poll_seconds
        while not self._stop.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self._stop.wait(min(1.0, remaining))

    def run(self) -> None:
        print(f"[Poller] Polling every {self.poll_seconds}s")
        try:
            while not self._stop.is_set():
                try:
                    self.poll_once()
                except Exception as e:
                    print(f"[Error] Exception in poll loop: {e}")
                    debug_log(traceback.format_exc())
                    self._on_status(f"Poll failed: {e}")
                self.sleep()
        finally:
            self.presence.disconnect()
            self._set_playing(False)
            print("[Poller] Stopped")
