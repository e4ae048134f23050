from __future__ import annotations

import pytest

from txtoken.message import (
    Approved,
    ErrorReply,
    Rejected,
    TokenIssued,
    TokenRequest,
    TransactionRequest,
    Unrecognized,
    decode_request,
    decode_response,
)


def test_token_request_wire_form():
    assert TokenRequest("alice").to_bytes() == b"SOLICITAR_TOKEN|USUARIO:alice"
    assert decode_request(b"SOLICITAR_TOKEN|USUARIO:alice") == TokenRequest("alice")


def test_transaction_request_wire_form():
    req = TransactionRequest(user="alice", dest="bob", amount="100", secret="123456", client_timestamp="1700000000")
    assert req.to_bytes() == b"TRANS|USUARIO:alice|DESTINO:bob|MONTO:100|TOKEN:123456|TIMESTAMP:1700000000"
    assert decode_request(req.to_bytes()) == req


def test_transaction_fields_in_any_order():
    raw = b"TRANS|TIMESTAMP:42|TOKEN:654321|MONTO:-3.5|DESTINO:bob|USUARIO:alice"
    assert decode_request(raw) == TransactionRequest("alice", "bob", "-3.5", "654321", "42")


def test_missing_transaction_fields_are_empty():
    assert decode_request(b"TRANS|USUARIO:alice") == TransactionRequest("alice", "", "", "", "")


def test_value_may_contain_colon():
    assert decode_request(b"TRANS|USUARIO:a|DESTINO:acct:7").dest == "acct:7"


def test_empty_username_is_accepted():
    assert decode_request(b"SOLICITAR_TOKEN|USUARIO:") == TokenRequest("")


@pytest.mark.parametrize(
    "raw",
    [b"PING", b"", b"SOLICITAR_TOKEN", b"SOLICITAR_TOKENX|USUARIO:a", b"TRANSFER|USUARIO:a", b"\xff\xfe"],
)
def test_malformed_requests_degrade_to_unrecognized(raw):
    assert isinstance(decode_request(raw), Unrecognized)


def test_trailing_newline_is_ignored():
    assert decode_request(b"SOLICITAR_TOKEN|USUARIO:alice\r\n") == TokenRequest("alice")


def test_delimiter_in_value_is_refused():
    with pytest.raises(ValueError):
        TokenRequest("al|ice").to_bytes()


def test_response_encodings():
    assert TokenIssued("123456", 60, 1700000000).to_bytes() == b"TOKEN:123456|EXPIRA:60|TIMESTAMP:1700000000"
    assert Approved(1700000001, "100", "bob").to_bytes() == b"APROBADA|ID:1700000001|MONTO:100|DESTINO:bob"
    assert Rejected().to_bytes() == b"RECHAZADA|MOTIVO:Token invalido o expirado"
    assert ErrorReply().to_bytes() == b"ERROR|Solicitud no reconocida"


def test_decode_responses():
    assert decode_response(b"TOKEN:123456|EXPIRA:60|TIMESTAMP:5") == TokenIssued("123456", 60, 5)
    assert decode_response(b"APROBADA|ID:9|MONTO:100|DESTINO:bob") == Approved(9, "100", "bob")
    assert decode_response(b"RECHAZADA|MOTIVO:Token invalido o expirado") == Rejected()
    assert decode_response(b"ERROR|Solicitud no reconocida") == ErrorReply()


@pytest.mark.parametrize("raw", [b"", b"HOLA", b"TOKEN:1|EXPIRA:soon|TIMESTAMP:5", b"APROBADA|MONTO:1"])
def test_bad_responses_raise(raw):
    with pytest.raises(ValueError):
        decode_response(raw)


@pytest.mark.parametrize(
    "req",
    [TokenRequest("alice\n"), TransactionRequest("a", "b", "1", "123456", "5\n"), TransactionRequest("a", "b\r\nc", "1", "2")],
)
def test_line_breaks_in_values_are_refused(req):
    with pytest.raises(ValueError):
        req.to_bytes()


def test_interior_line_break_is_unrecognized():
    assert isinstance(decode_request(b"TRANS|USUARIO:a|DESTINO:x\ny|TOKEN:1"), Unrecognized)


def test_transaction_round_trip_is_verbatim():
    req = TransactionRequest(user=" alice ", dest="acct:7", amount="1,5", secret="000001", client_timestamp="\t9")
    assert decode_request(req.to_bytes()) == req
