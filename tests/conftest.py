from __future__ import annotations

import pytest

from txtoken.client import TokenClient
from txtoken.server import TokenServer
from txtoken.store import TokenStore


class FakeClock:
    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> TokenStore:
    return TokenStore(clock=clock)


@pytest.fixture
def server(store: TokenStore):
    srv = TokenServer("127.0.0.1", 0, store=store, read_timeout_ms=1000)
    t = srv.start_background()
    yield srv
    srv.shutdown()
    t.join(timeout=5.0)


@pytest.fixture
def client(server: TokenServer) -> TokenClient:
    host, port = server.address
    return TokenClient(host=host, port=port, timeout_ms=2000)
