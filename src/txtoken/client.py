from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .constants import DEFAULT_CONNECT_TIMEOUT_MS, DEFAULT_PORT, SERVER_ENV
from .message import Response, TokenIssued, TokenRequest, TransactionRequest, decode_response
from .net import TcpEndpoint
from .store import Clock, wall_clock


def default_server_host() -> str:
    return os.environ.get(SERVER_ENV, "127.0.0.1")


@dataclass(slots=True)
class TokenClient:
    host: str = field(default_factory=default_server_host)
    port: int = DEFAULT_PORT
    timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
    clock: Clock = wall_clock

    def exchange(self, message: bytes) -> bytes:
        """One connection, one request, one response. Transport failures yield b""."""
        try:
            with TcpEndpoint.connecting(self.host, self.port, self.timeout_ms) as ep:
                ep.send(message)
                return ep.recv_until_eof()
        except OSError as exc:
            logging.error("exchange with %s:%d failed: %s", self.host, self.port, exc)
            return b""

    def send(self, message: bytes) -> Response | None:
        raw = self.exchange(message)
        if not raw:
            return None
        try:
            return decode_response(raw)
        except ValueError as exc:
            logging.error("bad response from %s:%d: %s", self.host, self.port, exc)
            return None

    def request_token(self, user: str) -> TokenIssued | None:
        resp = self.send(TokenRequest(user).to_bytes())
        if isinstance(resp, TokenIssued):
            return resp
        if resp is not None:
            logging.error("token request for %r refused: %r", user, resp)
        return None

    def transfer(self, user: str, dest: str, amount: str, secret: str) -> Response | None:
        req = TransactionRequest(
            user=user,
            dest=dest,
            amount=amount,
            secret=secret,
            client_timestamp=str(self.clock()),
        )
        return self.send(req.to_bytes())

