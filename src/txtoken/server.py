from __future__ import annotations

import logging
import socket
import threading
from typing import Tuple

from .constants import (
    ACCEPT_POLL_S,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_READ_TIMEOUT_MS,
    MAX_REQUEST_BYTES,
    REASON_TOO_LARGE,
)
from .dispatcher import Dispatcher
from .message import ErrorReply
from .net import RequestTooLarge, TcpEndpoint
from .store import TokenStore


def handle_connection(
    conn: TcpEndpoint,
    addr: Tuple[str, int],
    dispatcher: Dispatcher,
    max_request_bytes: int = MAX_REQUEST_BYTES,
) -> None:
    """Read one request, write one response, close."""
    with conn:
        try:
            raw = conn.recv_bounded(max_request_bytes)
        except RequestTooLarge as exc:
            logging.warning("%s:%d %s", addr[0], addr[1], exc)
            conn.discard_pending()
            reply = ErrorReply(REASON_TOO_LARGE).to_bytes()
        except socket.timeout:
            logging.warning("%s:%d read timed out; closing", addr[0], addr[1])
            return
        except OSError as exc:
            logging.warning("%s:%d read failed: %s", addr[0], addr[1], exc)
            return
        else:
            logging.debug("%s:%d request=%r", addr[0], addr[1], raw)
            reply = dispatcher.handle_bytes(raw)

        try:
            conn.send(reply)
        except OSError as exc:
            logging.warning("%s:%d send failed: %s", addr[0], addr[1], exc)
            return
        logging.debug("%s:%d response=%r", addr[0], addr[1], reply)


class TokenServer:
    """Accept loop with one worker thread per connection.

    The listening socket is bound in the constructor, so a bad host/port fails
    immediately with OSError.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        store: TokenStore | None = None,
        read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        max_request_bytes: int = MAX_REQUEST_BYTES,
    ):
        self.store = store if store is not None else TokenStore()
        self.dispatcher = Dispatcher(self.store)
        self.read_timeout_ms = read_timeout_ms
        self.max_request_bytes = max_request_bytes
        self.endpoint = TcpEndpoint.listening(host, port, poll_s=ACCEPT_POLL_S)
        self._stop = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        return self.endpoint.address

    def serve_forever(self) -> None:
        host, port = self.address
        logging.info("token server listening on %s:%d", host, port)
        try:
            while not self._stop.is_set():
                try:
                    conn, addr = self.endpoint.accept(self.read_timeout_ms)
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._stop.is_set():
                        break
                    logging.error("accept failed: %s", exc)
                    continue
                threading.Thread(
                    target=handle_connection,
                    args=(conn, addr, self.dispatcher, self.max_request_bytes),
                    daemon=True,
                ).start()
        finally:
            self.endpoint.close()
            logging.info("token server stopped")

    def shutdown(self) -> None:
        self._stop.set()

    def start_background(self) -> threading.Thread:
        t = threading.Thread(target=self.serve_forever, daemon=True)
        t.start()
        return t
