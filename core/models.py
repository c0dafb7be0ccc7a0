# core/models.py
import enum
from dataclasses import dataclass
from typing import Optional, Tuple

from pypresence.types import ActivityType


class MediaKind(enum.Enum):
    MOVIE = "movie"
    EPISODE = "episode"
    TRACK = "track"
    UNKNOWN = "unknown"


class PlayState(enum.IntEnum):
    PLAYING = 0
    PAUSED = 1
    BUFFERING = 2
    STOPPED = 3


def format_ms(ms: int) -> str:
    """Format milliseconds as M:SS or H:MM:SS."""
    total = max(0, int(ms)) // 1000
    hours, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


@dataclass(frozen=True)
class Snapshot:
    """
    What Plex says is playing at one poll instant.

    grandparent_title is the show (episodes) or artist (tracks);
    parent_title is the season or album.
    """

    title: str
    media_kind: MediaKind = MediaKind.UNKNOWN
    play_state: PlayState = PlayState.STOPPED
    year: Optional[int] = None
    grandparent_title: Optional[str] = None
    parent_title: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    imdb_id: Optional[str] = None
    poster_url: Optional[str] = None
    imdb_rating: Optional[str] = None
    rotten_tomatoes_rating: Optional[str] = None
    art_path: Optional[str] = None
    genres: Tuple[str, ...] = ()
    duration_ms: int = 0
    progress_ms: int = 0  # not clamped to duration

    @property
    def is_playing(self) -> bool:
        return self.play_state is PlayState.PLAYING

    def display_title(self) -> str:
        if self.media_kind in (MediaKind.EPISODE, MediaKind.TRACK):
            if self.grandparent_title:
                return f"{self.grandparent_title} - {self.title}"
            return self.title
        if self.year:
            return f"{self.title} ({self.year})"
        return self.title

    def state_text(self) -> str:
        return self.play_state.name.capitalize()

    def episode_code(self) -> str:
        s, e = self.season_number, self.episode_number
        if s is not None and e is not None:
            return f"S{s:02d}E{e:02d}"
        if s is not None:
            return f"S{s:02d}"
        if e is not None:
            return f"E{e:02d}"
        return ""

    def progress_text(self) -> str:
        return f"{format_ms(self.progress_ms)} / {format_ms(self.duration_ms)}"

    def change_key(self) -> str:
        # Coarse enough that steady playback only changes it every 10 seconds.
        return f"{self.title}{int(self.play_state)}{self.progress_ms // 10000}"


@dataclass
class PresenceInfo:
    activity_type: ActivityType = ActivityType.PLAYING
    details: str = ""
    state: str = ""
    large_image: str = "plex"
    large_text: str = "Plex"
    small_image: str = "plex"
    small_text: str = "Plex"
    is_playing: bool = False
    duration_ms: int = 0
    progress_ms: int = 0
    imdb_id: Optional[str] = None
