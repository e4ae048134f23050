from __future__ import annotations

import pytest

from txtoken.dispatcher import Dispatcher
from txtoken.message import (
    Approved,
    ErrorReply,
    Rejected,
    TokenIssued,
    TokenRequest,
    TransactionRequest,
    Unrecognized,
)


def test_token_then_transfer(store, clock):
    d = Dispatcher(store)
    issued = d.handle(TokenRequest("alice"))
    assert isinstance(issued, TokenIssued)
    assert issued.ttl_seconds == 60
    assert issued.issued_at == clock.now

    clock.advance(5)
    resp = d.handle(TransactionRequest("alice", "bob", "100", issued.secret, "0"))
    assert resp == Approved(txn_id=clock.now, amount="100", dest="bob")


def test_amount_is_passed_through_verbatim(store):
    d = Dispatcher(store)
    issued = d.handle(TokenRequest("alice"))
    resp = d.handle(TransactionRequest("alice", "bob", "-1e9 EUR", issued.secret))
    assert isinstance(resp, Approved)
    assert resp.amount == "-1e9 EUR"


def test_unknown_user_is_rejected(store):
    resp = Dispatcher(store).handle(TransactionRequest("carol", "bob", "1", "123456"))
    assert resp == Rejected("Token invalido o expirado")


def test_rejection_keeps_token(store):
    d = Dispatcher(store)
    issued = d.handle(TokenRequest("alice"))
    assert isinstance(d.handle(TransactionRequest("alice", "bob", "1", "bad")), Rejected)
    assert isinstance(d.handle(TransactionRequest("alice", "bob", "1", issued.secret)), Approved)


def test_unrecognized_yields_error(store):
    assert Dispatcher(store).handle(Unrecognized()) == ErrorReply("Solicitud no reconocida")


def test_handle_bytes_pipeline(store, clock):
    d = Dispatcher(store)
    assert d.handle_bytes(b"PING") == b"ERROR|Solicitud no reconocida"

    raw = d.handle_bytes(b"SOLICITAR_TOKEN|USUARIO:alice")
    assert raw.startswith(b"TOKEN:")
    assert b"|EXPIRA:60|TIMESTAMP:%d" % clock.now in raw
    secret = raw.split(b"|")[0].split(b":")[1]

    trans = b"TRANS|USUARIO:alice|DESTINO:bob|MONTO:100|TOKEN:" + secret + b"|TIMESTAMP:1"
    assert d.handle_bytes(trans) == b"APROBADA|ID:%d|MONTO:100|DESTINO:bob" % clock.now
    assert d.handle_bytes(trans) == b"RECHAZADA|MOTIVO:Token invalido o expirado"


def test_non_request_is_a_type_error(store):
    with pytest.raises(TypeError):
        Dispatcher(store).handle("SOLICITAR_TOKEN|USUARIO:alice")
