# ui/tray.py
from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices, QGuiApplication, QIcon
from PySide6.QtWidgets import QMenu, QStyle, QSystemTrayIcon, QApplication

from core.config import config_path

TIP_PREFIX = "Pleyx - "
TIP_LIMIT = 127


class TrayIcon(QSystemTrayIcon):
    """Tray icon: coloured while something plays, greyed out otherwise."""

    def __init__(self, worker, parent=None):
        super().__init__(parent)
        self.worker = worker

        base = self._load_icon()
        self._color_icon = base
        self._gray_icon = QIcon(base.pixmap(64, QIcon.Disabled))

        self.setIcon(self._gray_icon)
        self.setToolTip(TIP_PREFIX + "Plex Discord Presence")

        menu = QMenu()
        action_config = menu.addAction("Open Config")
        menu.addSeparator()
        action_quit = menu.addAction("Quit")
        action_config.triggered.connect(self._open_config)
        action_quit.triggered.connect(self._quit)
        self.setContextMenu(menu)
        self._menu = menu

        worker.now_playing.connect(self._on_now_playing)
        worker.playing.connect(self._on_playing)

    def _load_icon(self) -> QIcon:
        icon_path = Path(__file__).resolve().parents[1] / "images" / "plex.png"
        if icon_path.exists():
            return QIcon(str(icon_path))
        return QApplication.style().standardIcon(QStyle.SP_MediaPlay)

    def _on_now_playing(self, np):
        if np is None:
            self.set_tip("Nothing playing")
            return
        title = np.display_title()
        if len(title) > 100:
            title = title[:100] + "..."
        self.set_tip(title)

    def _on_playing(self, playing: bool):
        self.setIcon(self._color_icon if playing else self._gray_icon)

    def set_tip(self, text: str):
        self.setToolTip((TIP_PREFIX + text)[:TIP_LIMIT])

    def _open_config(self):
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(config_path())))

    def _quit(self):
        self.worker.stop()
        app = QGuiApplication.instance()
        if app:
            app.quit()
