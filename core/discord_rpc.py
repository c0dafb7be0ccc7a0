#core/discord_rpc.py
import enum
import json
import os
import time
from typing import Optional

from pypresence.payloads import Payload

from .debug import debug_log
from .ipc import FramedChannel, Opcode
from .models import PresenceInfo


# APP ID
APP_CLIENT_ID = "1451961488427188355"
RPC_VERSION = 1
FIELD_LIMIT = 128


class ClientState(enum.Enum):
    DISCONNECTED = "disconnected"
    HANDSHAKING = "handshaking"
    CONNECTED = "connected"


def imdb_url(imdb_id: str) -> str:
    return f"https://www.imdb.com/title/{imdb_id}"


def _field(text: str) -> Optional[str]:
    return text[:FIELD_LIMIT] if text else None


def build_payload(info: Optional[PresenceInfo], pid: Optional[int] = None, now: Optional[float] = None) -> Payload:
    """
    SET_ACTIVITY envelope for the given presence. None builds the clear
    command, which carries only the pid.
    """
    pid = os.getpid() if pid is None else pid
    if info is None:
        return Payload.set_activity(pid=pid, activity=None)

    start = end = None
    # Progress bar only while playing
    if info.is_playing and info.duration_ms > 0:
        now_secs = int(time.time() if now is None else now)
        start = now_secs - info.progress_ms // 1000
        end = now_secs + (info.duration_ms - info.progress_ms) // 1000

    buttons = None
    if info.imdb_id:
        buttons = [{"label": "View on IMDb", "url": imdb_url(info.imdb_id)}]

    return Payload.set_activity(
        pid=pid,
        activity_type=info.activity_type,
        details=_field(info.details),
        state=_field(info.state),
        start=start,
        end=end,
        large_image=info.large_image or None,
        large_text=_field(info.large_text),
        small_image=info.small_image or None,
        small_text=_field(info.small_text),
        buttons=buttons,
    )


class PresenceClient:
    """
    Talks SET_ACTIVITY to the local Discord client. Every frame sent is
    followed by exactly one read so the channel stays in step.
    """

    def __init__(self, client_id: str = APP_CLIENT_ID, channel: Optional[FramedChannel] = None):
        self.client_id = client_id
        self._channel = channel or FramedChannel()
        self._state = ClientState.DISCONNECTED
        self._nonce = 0

    @property
    def state(self) -> ClientState:
        if self._state is ClientState.CONNECTED and not self._channel.connected:
            self._state = ClientState.DISCONNECTED
        return self._state

    @property
    def connected(self) -> bool:
        return self.state is ClientState.CONNECTED

    def connect(self) -> bool:
        if self.connected:
            return True

        if not self._channel.open():
            self._state = ClientState.DISCONNECTED
            return False

        self._state = ClientState.HANDSHAKING
        self._nonce = 0
        handshake = json.dumps({"v": RPC_VERSION, "client_id": self.client_id})
        print("[Discord] Sending handshake...")

        # Any reply counts; Discord sends READY or closes the pipe.
        if not self._channel.write_frame(Opcode.HANDSHAKE, handshake.encode("utf-8")) \
                or self._channel.read_frame() is None:
            self._channel.close()
            self._state = ClientState.DISCONNECTED
            print("[Discord] Handshake failed")
            return False

        self._state = ClientState.CONNECTED
        print("[Discord] Handshake complete")
        return True

    def _send_command(self, payload: Payload) -> bool:
        # Nonces count up per connection instead of using the payload timestamp
        self._nonce += 1
        payload.data["nonce"] = str(self._nonce)

        if not self._channel.write_frame(Opcode.FRAME, json.dumps(payload.data).encode("utf-8")):
            self._state = ClientState.DISCONNECTED
            return False

        reply = self._channel.read_frame()
        if reply is None:
            self._state = ClientState.DISCONNECTED
            return False

        if reply.opcode is Opcode.CLOSE:
            debug_log(f"Discord closed the channel: {reply.payload[:200]!r}")
            self._channel.close()
            self._state = ClientState.DISCONNECTED
            return False

        try:
            body = json.loads(reply.payload or b"{}")
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("evt") == "ERROR":
            debug_log(f"SET_ACTIVITY error: {body.get('data')}")
        return True

    def update_presence(self, info: PresenceInfo) -> bool:
        if not self.connected and not self.connect():
            return False

        payload = build_payload(info)
        debug_log(f"SET_ACTIVITY {info.details} | {info.state}")
        return self._send_command(payload)

    def clear_presence(self) -> bool:
        if not self.connected:
            return False
        return self._send_command(build_payload(None))

    def disconnect(self) -> None:
        try:
            if self.connected:
                self.clear_presence()
        except Exception as e:
            debug_log(f"Clear on disconnect failed: {e}")
        finally:
            self._channel.close()
            self._state = ClientState.DISCONNECTED

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.disconnect()
