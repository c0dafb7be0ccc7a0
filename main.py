#main.py
import sys

from core import config as config_mod
from core.artwork import ArtworkResolver
from core.debug import set_debug
from core.discord_rpc import PresenceClient
from core.plex import PlexClient
from core.poller import SessionPoller


def main() -> int:
    cfg = config_mod.load()
    set_debug(cfg.debug, config_mod.config_path().parent)

    try:
        cfg.validate()
    except config_mod.ConfigError as e:
        print(f"[Config] {e} ({config_mod.config_path()})")
        return 1

    plex = PlexClient(cfg.plex_url, cfg.plex_token)
    if not plex.test_connection():
        print("[Plex] Failed to connect to Plex server. Please check your configuration.")
        return 1
    print("[Plex] Connected to server")

    poller = SessionPoller(
        source=plex,
        presence=PresenceClient(),
        artwork=ArtworkResolver(cfg.plex_url, cfg.plex_token),
        omdb_api_key=cfg.omdb_api_key,
        poll_seconds=cfg.polling_interval_secs,
        on_status=lambda msg: print(f"[Plex] {msg}"),
    )

    print("[Plex] Watching sessions… (Ctrl+C to stop)")
    try:
        poller.run()
    except KeyboardInterrupt:
        # run() disconnects from Discord on the way out
        poller.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
