from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Tuple

from .constants import LISTEN_BACKLOG, MAX_REQUEST_BYTES


class RequestTooLarge(ValueError):
    pass


@dataclass(slots=True)
class TcpEndpoint:
    """Thin wrapper over a stream socket for one-shot request/response exchanges."""

    sock: socket.socket

    @classmethod
    def listening(cls, host: str, port: int, backlog: int = LISTEN_BACKLOG, poll_s: float = 0.0) -> "TcpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(backlog)
        except OSError:
            sock.close()
            raise
        if poll_s > 0:
            sock.settimeout(poll_s)
        return cls(sock)

    @classmethod
    def connecting(cls, host: str, port: int, timeout_ms: int = 0) -> "TcpEndpoint":
        timeout = timeout_ms / 1000.0 if timeout_ms > 0 else None
        return cls(socket.create_connection((host, port), timeout=timeout))

    @property
    def address(self) -> Tuple[str, int]:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def accept(self, timeout_ms: int = 0) -> Tuple["TcpEndpoint", Tuple[str, int]]:
        conn, addr = self.sock.accept()
        conn.settimeout(timeout_ms / 1000.0 if timeout_ms > 0 else None)
        return TcpEndpoint(conn), addr

    def send(self, data: bytes) -> None:
        self.sock.sendall(data)

    def recv_bounded(self, limit: int = MAX_REQUEST_BYTES) -> bytes:
        """Single read of at most ``limit`` bytes.

        One extra byte is requested so an oversized message is reported
        instead of being silently truncated.
        """
        data = self.sock.recv(limit + 1)
        if len(data) > limit:
            raise RequestTooLarge(f"request exceeds {limit} bytes")
        return data

    def recv_until_eof(self, chunk: int = 4096) -> bytes:
        """Read until the peer closes; the server always closes after its one response."""
        chunks = []
        while True:
            data = self.sock.recv(chunk)
            if not data:
                return b"".join(chunks)
            chunks.append(data)

    def discard_pending(self, limit: int = 65536) -> None:
        """Best effort: drop what the peer already sent so close() does not reset the connection."""
        timeout = self.sock.gettimeout()
        self.sock.setblocking(False)
        try:
            while limit > 0:
                data = self.sock.recv(min(limit, 4096))
                if not data:
                    break
                limit -= len(data)
        except OSError:
            pass
        finally:
            self.sock.settimeout(timeout)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "TcpEndpoint":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
