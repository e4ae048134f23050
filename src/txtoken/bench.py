from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from .client import TokenClient
from .message import Approved
from .server import TokenServer


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    rounds: int
    attempts: int
    approved: int
    rejected: int
    failed: int
    duration_s: float
    tx_per_s: float


def run_benchmark(
    *,
    clients: int = 8,
    rounds: int = 20,
    user: str = "bench",
    timeout_ms: int = 2000,
) -> BenchmarkResult:
    """Race ``clients`` transfers against each freshly issued token on loopback.

    A correct server approves exactly one transfer per round.
    """
    server = TokenServer("127.0.0.1", 0, read_timeout_ms=timeout_ms)
    host, port = server.address
    t = server.start_background()

    client = TokenClient(host=host, port=port, timeout_ms=timeout_ms)
    approved = 0
    rejected = 0
    attempts = 0
    lock = threading.Lock()
    start = time.monotonic()

    try:
        for _ in range(rounds):
            issued = client.request_token(user)
            if issued is None:
                raise RuntimeError(f"no token from {host}:{port}")

            gate = threading.Barrier(clients)

            def spend(secret: str = issued.secret) -> None:
                nonlocal approved, rejected, attempts
                gate.wait()
                resp = client.transfer(user, "sink", "1", secret)
                with lock:
                    attempts += 1
                    if isinstance(resp, Approved):
                        approved += 1
                    elif resp is not None:
                        rejected += 1

            workers = [threading.Thread(target=spend, daemon=True) for _ in range(clients)]
            for w in workers:
                w.start()
            for w in workers:
                w.join(timeout=10.0)
    finally:
        server.shutdown()
        t.join(timeout=5.0)

    duration_s = max(0.001, time.monotonic() - start)
    return BenchmarkResult(
        rounds=rounds,
        attempts=attempts,
        approved=approved,
        rejected=rejected,
        failed=attempts - approved - rejected,
        duration_s=duration_s,
        tx_per_s=attempts / duration_s,
    )
