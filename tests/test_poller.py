from __future__ import annotations

import pytest
from pypresence.types import ActivityType

from core import omdb
from core.models import MediaKind, PlayState, Snapshot
from core.poller import SessionPoller, build_presence


class FakeSource:
    def __init__(self, *snapshots):
        self.snapshots = list(snapshots)

    def get_now_playing(self):
        item = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakePresence:
    def __init__(self):
        self.updates = []
        self.clears = 0
        self.disconnects = 0

    def update_presence(self, info) -> bool:
        self.updates.append(info)
        return True

    def clear_presence(self) -> bool:
        self.clears += 1
        return True

    def disconnect(self) -> None:
        self.disconnects += 1


class FakeArtwork:
    def __init__(self, url: str = "https://files.catbox.moe/a.jpg"):
        self.url = url
        self.calls = []

    def resolve(self, path: str) -> str:
        self.calls.append(path)
        return self.url


def _poller(source, presence, **kwargs):
    notified = []
    poller = SessionPoller(source, presence, on_now_playing=notified.append, **kwargs)
    return poller, notified


@pytest.mark.parametrize("state", [PlayState.PAUSED, PlayState.BUFFERING, PlayState.STOPPED])
def test_non_playing_snapshot_clears_never_updates(state: PlayState) -> None:
    presence = FakePresence()
    poller, _ = _poller(FakeSource(Snapshot("Heat", MediaKind.MOVIE, state)), presence)

    poller.poll_once()
    poller.poll_once()

    assert presence.updates == []
    assert presence.clears == 2
    assert not poller.playing


def test_identical_change_keys_notify_once_but_publish_every_cycle() -> None:
    np = Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING, progress_ms=12_000)
    presence = FakePresence()
    poller, notified = _poller(FakeSource(np, np, np), presence)

    for _ in range(3):
        poller.poll_once()

    assert notified == [np]
    assert len(presence.updates) == 3
    assert poller.playing


def test_nothing_playing_after_playback_clears_once() -> None:
    np = Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING)
    presence = FakePresence()
    playing_changes = []
    poller, notified = _poller(FakeSource(np, None, None), presence, on_playing=playing_changes.append)

    for _ in range(3):
        poller.poll_once()

    assert notified == [np, None]
    assert presence.clears == 1
    assert playing_changes == [True, False]
    assert poller.last_key == ""


def test_episode_presence_uses_resolved_artwork() -> None:
    np = Snapshot(
        "Pilot",
        MediaKind.EPISODE,
        PlayState.PLAYING,
        grandparent_title="Show",
        season_number=1,
        episode_number=1,
        art_path="/library/metadata/10/art/1",
        duration_ms=1_000_000,
    )
    presence = FakePresence()
    artwork = FakeArtwork()
    poller, _ = _poller(FakeSource(np), presence, artwork=artwork)

    poller.poll_once()

    info = presence.updates[0]
    assert info.activity_type is ActivityType.WATCHING
    assert info.details == "Show"
    assert info.state == "S01E01 • Pilot"
    assert info.large_image == "https://files.catbox.moe/a.jpg"
    assert info.is_playing
    assert artwork.calls == ["/library/metadata/10/art/1"]


def test_enrichment_poster_wins_over_resolver(monkeypatch: pytest.MonkeyPatch) -> None:
    np = Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING, year=1995, art_path="/art", genres=("Crime", "Drama"))
    result = omdb.OmdbResult(
        imdb_id="tt0113277",
        poster_url="https://m.media-amazon.com/heat.jpg",
        imdb_rating="8.3/10",
        rotten_tomatoes_rating="88%",
    )
    monkeypatch.setattr(omdb, "lookup", lambda *args, **kwargs: result)

    presence = FakePresence()
    artwork = FakeArtwork()
    poller, _ = _poller(FakeSource(np), presence, artwork=artwork, omdb_api_key="key")
    poller.poll_once()

    info = presence.updates[0]
    assert info.large_image == "https://m.media-amazon.com/heat.jpg"
    assert info.state == "8.3/10 • 88% • Crime, Drama"
    assert info.imdb_id == "tt0113277"
    assert artwork.calls == []


def test_failed_artwork_falls_back_to_static_key() -> None:
    np = Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING, art_path="/art")
    presence = FakePresence()
    poller, _ = _poller(FakeSource(np), presence, artwork=FakeArtwork(url=""))
    poller.poll_once()
    assert presence.updates[0].large_image == "movie"


def test_build_presence_track_and_unknown() -> None:
    track = Snapshot("Song", MediaKind.TRACK, PlayState.PLAYING, grandparent_title="Artist")
    info = build_presence(track)
    assert info.activity_type is ActivityType.LISTENING
    assert info.details == "Song"
    assert info.state == "Music"
    assert info.large_image == "music"
    assert info.large_text == "Artist - Unknown Album"

    other = build_presence(Snapshot("Clip", MediaKind.UNKNOWN, PlayState.PLAYING))
    assert other.activity_type is ActivityType.PLAYING
    assert other.state == "Playing"
    assert other.large_image == "plex"


def test_movie_without_ratings_or_genres_shows_state() -> None:
    info = build_presence(Snapshot("Heat", MediaKind.MOVIE, PlayState.PLAYING, year=1995))
    assert info.details == "Heat (1995)"
    assert info.state == "Playing"


def test_run_survives_cycle_errors_and_disconnects_on_stop() -> None:
    presence = FakePresence()
    np = Snapshot("Heat", MediaKind.MOVIE, PlayState.PAUSED)
    poller, _ = _poller(FakeSource(ValueError("bad json"), np), presence, poll_seconds=1)

    cycles = []
    real_poll = poller.poll_once

    def counting_poll():
        cycles.append(1)
        if len(cycles) >= 2:
            poller.stop()
        real_poll()

    poller.poll_once = counting_poll
    poller.run()

    assert len(cycles) == 2
    assert presence.clears == 1
    assert presence.disconnects == 1


def test_sleep_returns_promptly_when_stopped() -> None:
    poller, _ = _poller(FakeSource(None), FakePresence(), poll_seconds=3600)
    poller.stop()
    poller.sleep()
    assert poller.stopped
