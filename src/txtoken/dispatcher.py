from __future__ import annotations

import logging
from dataclasses import dataclass

from .message import (
    Approved,
    ErrorReply,
    Rejected,
    Request,
    Response,
    TokenIssued,
    TokenRequest,
    TransactionRequest,
    Unrecognized,
    decode_request,
)
from .store import TokenStore


@dataclass(slots=True)
class Dispatcher:
    store: TokenStore

    def handle(self, request: Request) -> Response:
        if isinstance(request, TokenRequest):
            record = self.store.issue(request.user)
            return TokenIssued(secret=record.secret, ttl_seconds=record.ttl_seconds, issued_at=record.issued_at)

        if isinstance(request, TransactionRequest):
            if self.store.redeem(request.user, request.secret):
                logging.info("transaction APPROVED; user=%r dest=%r amount=%r", request.user, request.dest, request.amount)
                return Approved(txn_id=self.store.clock(), amount=request.amount, dest=request.dest)
            logging.info("transaction REJECTED; user=%r dest=%r amount=%r", request.user, request.dest, request.amount)
            return Rejected()

        if isinstance(request, Unrecognized):
            logging.warning("unrecognized request; reason=%s", request.reason)
            return ErrorReply(request.reason)

        raise TypeError(f"not a request: {request!r}")

    def handle_bytes(self, raw: bytes) -> bytes:
        return self.handle(decode_request(raw)).to_bytes()
