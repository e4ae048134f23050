from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from .constants import (
    FIELD_SEP,
    KV_SEP,
    REASON_INVALID_TOKEN,
    REASON_UNRECOGNIZED,
    TAG_APPROVED,
    TAG_ERROR,
    TAG_REJECTED,
    TAG_TOKEN_REQUEST,
    TAG_TRANSACTION,
)

ENCODING = "utf-8"


def _encode(tag: str | None, pairs: Iterable[Tuple[str, object]]) -> bytes:
    parts = [] if tag is None else [tag]
    for key, value in pairs:
        text = str(value)
        if FIELD_SEP in text or "\r" in text or "\n" in text:
            raise ValueError(f"{key} must not contain {FIELD_SEP!r} or line breaks: {text!r}")
        parts.append(f"{key}{KV_SEP}{text}")
    return FIELD_SEP.join(parts).encode(ENCODING)


def _fields(parts: Iterable[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for item in parts:
        key, sep, value = item.partition(KV_SEP)
        if sep:
            out[key] = value
    return out


def _split(raw: bytes) -> list[str]:
    text = raw.decode(ENCODING, errors="replace")
    if text.endswith("\n"):
        text = text[:-1]
        if text.endswith("\r"):
            text = text[:-1]
    return text.split(FIELD_SEP)


# --- requests ---------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenRequest:
    user: str

    def to_bytes(self) -> bytes:
        return _encode(TAG_TOKEN_REQUEST, [("USUARIO", self.user)])


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    user: str
    dest: str
    amount: str
    secret: str
    client_timestamp: str = ""

    def to_bytes(self) -> bytes:
        return _encode(
            TAG_TRANSACTION,
            [
                ("USUARIO", self.user),
                ("DESTINO", self.dest),
                ("MONTO", self.amount),
                ("TOKEN", self.secret),
                ("TIMESTAMP", self.client_timestamp),
            ],
        )


@dataclass(frozen=True, slots=True)
class Unrecognized:
    reason: str = REASON_UNRECOGNIZED


Request = Union[TokenRequest, TransactionRequest, Unrecognized]


def decode_request(raw: bytes) -> Request:
    """Decode one request. Never raises: anything unusable becomes ``Unrecognized``.

    Fields after the tag are looked up by key, so their order on the wire does
    not matter. Missing TRANS fields decode as empty strings. Line breaks are
    only allowed as a single trailing terminator.
    """
    parts = _split(raw)
    if any("\r" in p or "\n" in p for p in parts):
        return Unrecognized()
    tag, *rest = parts
    fields = _fields(rest)

    if tag == TAG_TOKEN_REQUEST:
        if "USUARIO" not in fields:
            return Unrecognized()
        return TokenRequest(user=fields["USUARIO"])

    if tag == TAG_TRANSACTION:
        return TransactionRequest(
            user=fields.get("USUARIO", ""),
            dest=fields.get("DESTINO", ""),
            amount=fields.get("MONTO", ""),
            secret=fields.get("TOKEN", ""),
            client_timestamp=fields.get("TIMESTAMP", ""),
        )

    return Unrecognized()


# --- responses --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenIssued:
    secret: str
    ttl_seconds: int
    issued_at: int

    def to_bytes(self) -> bytes:
        return _encode(
            None,
            [("TOKEN", self.secret), ("EXPIRA", self.ttl_seconds), ("TIMESTAMP", self.issued_at)],
        )


@dataclass(frozen=True, slots=True)
class Approved:
    txn_id: int
    amount: str
    dest: str

    def to_bytes(self) -> bytes:
        return _encode(TAG_APPROVED, [("ID", self.txn_id), ("MONTO", self.amount), ("DESTINO", self.dest)])


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str = REASON_INVALID_TOKEN

    def to_bytes(self) -> bytes:
        return _encode(TAG_REJECTED, [("MOTIVO", self.reason)])


@dataclass(frozen=True, slots=True)
class ErrorReply:
    reason: str = REASON_UNRECOGNIZED

    def to_bytes(self) -> bytes:
        if FIELD_SEP in self.reason or "\r" in self.reason or "\n" in self.reason:
            raise ValueError(f"reason must not contain {FIELD_SEP!r} or line breaks: {self.reason!r}")
        return f"{TAG_ERROR}{FIELD_SEP}{self.reason}".encode(ENCODING)


Response = Union[TokenIssued, Approved, Rejected, ErrorReply]


def decode_response(raw: bytes) -> Response:
    """Client-side decode. Raises ValueError for anything that is not a known response."""
    if not raw:
        raise ValueError("empty response")

    parts = _split(raw)
    tag = parts[0]

    if tag == TAG_APPROVED:
        fields = _fields(parts[1:])
        try:
            txn_id = int(fields["ID"])
        except (KeyError, ValueError) as exc:
            raise ValueError(f"malformed approval: {raw!r}") from exc
        return Approved(txn_id=txn_id, amount=fields.get("MONTO", ""), dest=fields.get("DESTINO", ""))

    if tag == TAG_REJECTED:
        return Rejected(reason=_fields(parts[1:]).get("MOTIVO", ""))

    if tag == TAG_ERROR:
        return ErrorReply(reason=FIELD_SEP.join(parts[1:]))

    if tag.startswith("TOKEN" + KV_SEP):
        fields = _fields(parts)
        try:
            return TokenIssued(
                secret=fields["TOKEN"],
                ttl_seconds=int(fields["EXPIRA"]),
                issued_at=int(fields["TIMESTAMP"]),
            )
        except (KeyError, ValueError) as exc:
            raise ValueError(f"malformed token response: {raw!r}") from exc

    raise ValueError(f"unknown response tag: {tag!r}")
