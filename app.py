import sys

from PySide6.QtWidgets import QApplication, QMessageBox

from core import config as config_mod
from core.debug import set_debug
from core.plex import PlexClient
from ui.tray import TrayIcon
from ui.worker import PresenceWorker


def _fail(title: str, message: str) -> int:
    QMessageBox.critical(None, f"Pleyx - {title}", message)
    return 1


def main():
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    cfg = config_mod.load()
    set_debug(cfg.debug, config_mod.config_path().parent)

    try:
        cfg.validate()
    except config_mod.ConfigError as e:
        sys.exit(_fail("Configuration Required", f"{e}\n\nConfig file: {config_mod.config_path()}"))

    plex = PlexClient(cfg.plex_url, cfg.plex_token)
    if not plex.test_connection():
        sys.exit(_fail("Connection Error", "Failed to connect to Plex server.\n\nPlease check your configuration."))
    print("[Plex] Connected to server")

    worker = PresenceWorker(cfg, plex=plex)
    tray = TrayIcon(worker)
    tray.show()

    def _stop_worker():
        worker.stop()
        worker.wait()

    app.aboutToQuit.connect(_stop_worker)
    worker.start()
    sys.exit(app.exec())

if __name__ == "__main__":
    main()
