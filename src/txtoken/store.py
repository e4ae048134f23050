from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .constants import SECRET_MAX, SECRET_MIN, TOKEN_TTL_SECONDS

Clock = Callable[[], int]


def wall_clock() -> int:
    return int(time.time())


def generate_secret() -> str:
    return str(SECRET_MIN + secrets.randbelow(SECRET_MAX - SECRET_MIN + 1))


@dataclass(frozen=True, slots=True)
class TokenRecord:
    owner: str
    secret: str
    issued_at: int
    ttl_seconds: int = TOKEN_TTL_SECONDS

    @property
    def expires_at(self) -> int:
        return self.issued_at + self.ttl_seconds

    def accepts(self, secret: str, now: int) -> bool:
        # inclusive: still good at exactly issued_at + ttl
        return self.secret == secret and now - self.issued_at <= self.ttl_seconds


class TokenStore:
    """One active token per owner, guarded by a single lock.

    Stale records are never swept; they fail validation and get overwritten by
    the owner's next ``issue``.
    """

    def __init__(
        self,
        clock: Clock = wall_clock,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        secret_factory: Callable[[], str] = generate_secret,
    ):
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self._new_secret = secret_factory
        self._records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, owner: object) -> bool:
        with self._lock:
            return owner in self._records

    def issue(self, owner: str) -> TokenRecord:
        with self._lock:
            previous = self._records.get(owner)
            secret = self._new_secret()
            while previous is not None and secret == previous.secret:
                secret = self._new_secret()
            record = TokenRecord(owner=owner, secret=secret, issued_at=self.clock(), ttl_seconds=self.ttl_seconds)
            self._records[owner] = record
        logging.info("token issued; owner=%r ttl=%ds replaced=%s", owner, record.ttl_seconds, previous is not None)
        return record

    def validate(self, owner: str, secret: str, now: int | None = None) -> bool:
        with self._lock:
            return self._check(owner, secret, now)

    def consume(self, owner: str) -> None:
        with self._lock:
            self._records.pop(owner, None)

    def redeem(self, owner: str, secret: str, now: int | None = None) -> bool:
        """Validate and consume under one lock hold; only one caller can win a token."""
        with self._lock:
            if not self._check(owner, secret, now):
                return False
            del self._records[owner]
            return True

    def _check(self, owner: str, secret: str, now: int | None) -> bool:
        record = self._records.get(owner)
        if record is None:
            return False
        return record.accepts(secret, self.clock() if now is None else now)
