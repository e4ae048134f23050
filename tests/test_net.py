from __future__ import annotations

import socket

import pytest

from txtoken.net import RequestTooLarge, TcpEndpoint


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield TcpEndpoint(a), b
    a.close()
    b.close()


def test_recv_bounded_reports_oversize(pair):
    ep, peer = pair
    peer.sendall(b"x" * 11)
    with pytest.raises(RequestTooLarge):
        ep.recv_bounded(10)


def test_discard_pending_keeps_timeout(pair):
    ep, peer = pair
    ep.sock.settimeout(1.5)
    peer.sendall(b"leftover")
    ep.discard_pending()
    assert ep.sock.gettimeout() == 1.5


def test_recv_until_eof_reads_past_one_chunk(pair):
    ep, peer = pair
    payload = b"A" * 10_000
    peer.sendall(payload)
    peer.shutdown(socket.SHUT_WR)
    assert ep.recv_until_eof(chunk=1024) == payload
