# core/artwork.py
import threading
from typing import Dict, Optional

import requests

from .debug import debug_log


CATBOX_URL = "https://catbox.moe/user/api.php"
USER_AGENT = "Pleyx/1.0"


class ArtworkResolver:
    """
    Turns a Plex artwork path into a public catbox.moe URL.

    Download and upload happen together under one lock, so a path is fetched
    at most once per process. Failures are not cached.
    """

    def __init__(self, plex_url: str, plex_token: str, session: Optional[requests.Session] = None):
        self.plex_url = plex_url.rstrip("/")
        self.plex_token = plex_token
        self._http = session or requests.Session()
        self._http.headers.setdefault("User-Agent", USER_AGENT)
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __contains__(self, art_path: str) -> bool:
        with self._lock:
            return art_path in self._cache

    def resolve(self, art_path: str) -> str:
        if not art_path:
            return ""

        with self._lock:
            cached = self._cache.get(art_path)
            if cached:
                return cached

            print(f"[Artwork] Downloading: {art_path}")
            image = self._download(art_path)
            if not image:
                print("[Artwork] Failed to download image")
                return ""

            print(f"[Artwork] Downloaded {len(image)} bytes, uploading to catbox...")
            url = self._upload(image)
            if not url:
                print("[Artwork] Failed to upload to catbox")
                return ""

            print(f"[Artwork] Uploaded: {url}")
            self._cache[art_path] = url
            return url

    def _download(self, art_path: str) -> bytes:
        try:
            r = self._http.get(
                self.plex_url + art_path,
                params={"X-Plex-Token": self.plex_token},
                timeout=15,
            )
            r.raise_for_status()
            return r.content or b""
        except Exception as e:
            debug_log(f"Artwork download failed for {art_path}: {e}")
            return b""

    def _upload(self, image: bytes) -> str:
        # requests picks a random multipart boundary per request.
        try:
            r = self._http.post(
                CATBOX_URL,
                data={"reqtype": "fileupload"},
                files={"fileToUpload": ("image.jpg", image, "image/jpeg")},
                timeout=30,
            )
            r.raise_for_status()
            return (r.text or "").rstrip()
        except Exception as e:
            debug_log(f"Catbox upload failed: {e}")
            return ""
