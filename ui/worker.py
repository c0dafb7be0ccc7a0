# ui/worker.py
from PySide6.QtCore import QThread, Signal

from core.artwork import ArtworkResolver
from core.config import Config
from core.debug import debug_log
from core.discord_rpc import PresenceClient
from core.plex import PlexClient
from core.poller import SessionPoller


class PresenceWorker(QThread):
    status = Signal(str)
    now_playing = Signal(object)   # Snapshot or None
    playing = Signal(bool)

    def __init__(self, config: Config, plex: PlexClient = None, parent=None):
        super().__init__(parent)
        plex = plex or PlexClient(config.plex_url, config.plex_token)
        self.poller = SessionPoller(
            source=plex,
            presence=PresenceClient(),
            artwork=ArtworkResolver(config.plex_url, config.plex_token),
            omdb_api_key=config.omdb_api_key,
            poll_seconds=config.polling_interval_secs,
            on_now_playing=self.now_playing.emit,
            on_playing=self.playing.emit,
            on_status=self.status.emit,
        )

    def stop(self):
        self.poller.stop()

    def run(self):
        self.status.emit("Watching Plex…")
        try:
            self.poller.run()
        except Exception as e:
            self.status.emit(f"Poller crashed: {e}")
            debug_log(f"Poller crashed: {e}")
