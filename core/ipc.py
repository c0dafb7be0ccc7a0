# core/ipc.py
import enum
import socket
import struct
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional

from pypresence.utils import get_ipc_path

from .debug import debug_log


HEADER = struct.Struct("<iI")
IO_TIMEOUT = 5.0
MAX_PAYLOAD = 1024 * 1024
PIPE_COUNT = 10


class Opcode(enum.IntEnum):
    HANDSHAKE = 0
    FRAME = 1
    CLOSE = 2
    PING = 3
    PONG = 4


@dataclass(frozen=True)
class Frame:
    opcode: Opcode
    payload: bytes = b""


class ProtocolError(Exception):
    pass


def encode_frame(opcode: Opcode, payload: bytes) -> bytes:
    return HEADER.pack(int(opcode), len(payload)) + payload


def decode_header(header: bytes):
    """
    Returns (opcode, length). Raises ProtocolError for unknown opcodes or
    oversized payloads.
    """
    if len(header) != HEADER.size:
        raise ProtocolError(f"short header: {len(header)} bytes")
    op, length = HEADER.unpack(header)
    try:
        opcode = Opcode(op)
    except ValueError:
        raise ProtocolError(f"unknown opcode {op}") from None
    if length > MAX_PAYLOAD:
        raise ProtocolError(f"payload length {length} over limit")
    return opcode, length


class SocketStream:
    """Blocking socket; each read_exact call finishes within the timeout."""

    def __init__(self, sock: socket.socket, timeout: float = IO_TIMEOUT):
        self._sock = sock
        self._timeout = timeout
        self._sock.settimeout(timeout)

    def write(self, data: bytes) -> int:
        self._sock.sendall(data)
        return len(data)

    def read_exact(self, n: int) -> bytes:
        # settimeout alone bounds each recv, not the whole read
        deadline = time.monotonic() + self._timeout
        buf = bytearray()
        while len(buf) < n:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError("socket read timed out")
            self._sock.settimeout(remaining)
            chunk = self._sock.recv(n - len(buf))
            if not chunk:
                break
            buf.extend(chunk)
        return bytes(buf)

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError:
            pass


class PipeStream:
    """
    Windows named pipe opened as a file. File reads on a pipe can't time out,
    so each call runs on a helper thread and is abandoned after the deadline.
    """

    def __init__(self, handle, timeout: float = IO_TIMEOUT):
        self._handle = handle
        self._timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=1)

    def _call(self, fn, *args):
        future = self._pool.submit(fn, *args)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeout:
            raise TimeoutError("pipe operation timed out") from None

    def write(self, data: bytes) -> int:
        def _write(d):
            written = self._handle.write(d)
            self._handle.flush()
            return written
        return self._call(_write, data)

    def read_exact(self, n: int) -> bytes:
        def _read(size):
            buf = bytearray()
            while len(buf) < size:
                chunk = self._handle.read(size - len(buf))
                if not chunk:
                    break
                buf.extend(chunk)
            return bytes(buf)
        return self._call(_read, n)

    def close(self) -> None:
        try:
            self._handle.close()
        except OSError:
            pass
        self._pool.shutdown(wait=False, cancel_futures=True)


def connect_default(index: int):
    """Open the daemon channel for one index, or raise OSError."""
    path = get_ipc_path(index)
    if not path:
        raise FileNotFoundError(f"no discord-ipc-{index} channel")

    if sys.platform == "win32":
        return PipeStream(open(path, "r+b", buffering=0))

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.settimeout(IO_TIMEOUT)
        sock.connect(path)
    except OSError:
        sock.close()
        raise
    return SocketStream(sock)


class FramedChannel:
    """
    Opcode-tagged, length-prefixed frames over the local Discord IPC channel.

    Any failure closes the channel and reports False/None; reconnecting is up
    to the caller.
    """

    def __init__(self, connector: Callable[[int], object] = connect_default, pipe_count: int = PIPE_COUNT):
        self._connector = connector
        self._pipe_count = pipe_count
        self._stream = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._stream is not None

    def open(self) -> bool:
        if self._stream is not None:
            return True

        for i in range(self._pipe_count):
            try:
                stream = self._connector(i)
            except OSError as e:
                debug_log(f"discord-ipc-{i} unavailable: {e}")
                continue
            self._stream = stream
            print(f"[Discord] Connected to pipe: discord-ipc-{i}")
            return True

        print("[Discord] Failed to connect to any Discord pipe")
        return False

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    def write_frame(self, opcode: Opcode, payload: bytes) -> bool:
        with self._lock:
            if self._stream is None:
                return False

            data = encode_frame(opcode, payload)
            try:
                written = self._stream.write(data)
            except (OSError, TimeoutError) as e:
                print(f"[Discord] Write error: {e}")
                self.close()
                return False

            if written != len(data):
                debug_log(f"Short write: {written}/{len(data)} bytes")
                self.close()
                return False
            return True

    def read_frame(self) -> Optional[Frame]:
        with self._lock:
            if self._stream is None:
                return None

            try:
                header = self._stream.read_exact(HEADER.size)
                opcode, length = decode_header(header)
                payload = self._stream.read_exact(length) if length else b""
            except ProtocolError as e:
                print(f"[Discord] Invalid frame: {e}")
                self.close()
                return None
            except (OSError, TimeoutError) as e:
                print(f"[Discord] Read error: {e}")
                self.close()
                return None

            if len(payload) != length:
                debug_log(f"Short read: {len(payload)}/{length} bytes")
                self.close()
                return None
            return Frame(opcode, payload)
