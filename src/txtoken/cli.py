from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import time

from .bench import run_benchmark
from .client import TokenClient, default_server_host
from .constants import (
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_READ_TIMEOUT_MS,
    SERVER_ENV,
    TOKEN_TTL_SECONDS,
)
from .message import Approved, Response
from .server import TokenServer
from .store import TokenStore


def _emit(args: argparse.Namespace, payload: dict) -> None:
    print(json.dumps(payload, indent=2) if args.json else payload)


def _client(args: argparse.Namespace) -> TokenClient:
    return TokenClient(host=args.host, port=args.port, timeout_ms=args.timeout_ms)


def _call(fn, *args):
    # encoding refuses values with the wire delimiter or line breaks
    try:
        return fn(*args)
    except ValueError as exc:
        raise SystemExit(f"invalid request: {exc}")


def _outcome(resp: Response | None) -> dict:
    if resp is None:
        return {"status": "FAILED"}
    return {"status": type(resp).__name__.upper(), **dataclasses.asdict(resp)}


def cmd_serve(args: argparse.Namespace) -> int:
    try:
        server = TokenServer(
            args.host,
            args.port,
            store=TokenStore(ttl_seconds=args.ttl),
            read_timeout_ms=args.read_timeout_ms,
        )
    except OSError as exc:
        raise SystemExit(f"cannot listen on {args.host}:{args.port}: {exc}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown()
    return 0


def cmd_token(args: argparse.Namespace) -> int:
    issued = _call(_client(args).request_token, args.user)
    if issued is None:
        _emit(args, {"role": "client", "status": "FAILED"})
        return 1
    _emit(args, {"role": "client", "status": "ISSUED", **dataclasses.asdict(issued)})
    return 0


def cmd_transfer(args: argparse.Namespace) -> int:
    resp = _call(_client(args).transfer, args.user, args.dest, args.amount, args.token)
    _emit(args, {"role": "client", **_outcome(resp)})
    return 0 if isinstance(resp, Approved) else 1


def cmd_pay(args: argparse.Namespace) -> int:
    client = _client(args)
    issued = _call(client.request_token, args.user)
    if issued is None:
        _emit(args, {"role": "client", "status": "FAILED", "step": "token"})
        return 1
    logging.info("token %s valid for %ds", issued.secret, issued.ttl_seconds)
    if args.delay > 0:
        time.sleep(args.delay)
    resp = _call(client.transfer, args.user, args.dest, args.amount, issued.secret)
    _emit(args, {"role": "client", **_outcome(resp)})
    return 0 if isinstance(resp, Approved) else 1


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(clients=args.clients, rounds=args.rounds, timeout_ms=args.timeout_ms)
    _emit(args, {"role": "bench", **dataclasses.asdict(r)})
    return 0 if r.approved == r.rounds else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="txtoken", description="Single-use transaction tokens over TCP.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_client(x: argparse.ArgumentParser) -> None:
        x.add_argument("--host", default=default_server_host(), help=f"server host (env {SERVER_ENV})")
        x.add_argument("--port", type=int, default=DEFAULT_PORT)
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_CONNECT_TIMEOUT_MS)
        x.add_argument("--json", action="store_true")

    serve = sub.add_parser("serve", help="run the token server")
    serve.add_argument("--host", default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve.add_argument("--ttl", type=int, default=TOKEN_TTL_SECONDS, help="token lifetime in seconds")
    serve.add_argument("--read-timeout-ms", type=int, default=DEFAULT_READ_TIMEOUT_MS)
    serve.set_defaults(func=cmd_serve)

    token = sub.add_parser("token", help="request a token for USER")
    add_client(token)
    token.add_argument("user")
    token.set_defaults(func=cmd_token)

    transfer = sub.add_parser("transfer", help="submit a transfer with an existing token")
    add_client(transfer)
    transfer.add_argument("user")
    transfer.add_argument("dest")
    transfer.add_argument("amount")
    transfer.add_argument("token")
    transfer.set_defaults(func=cmd_transfer)

    pay = sub.add_parser("pay", help="request a token, then spend it on one transfer")
    add_client(pay)
    pay.add_argument("user")
    pay.add_argument("dest")
    pay.add_argument("amount")
    pay.add_argument("--delay", type=float, default=2.0, help="seconds between token and transfer")
    pay.set_defaults(func=cmd_pay)

    bench = sub.add_parser("bench", help="loopback race: many transfers per token")
    bench.add_argument("--clients", type=int, default=8)
    bench.add_argument("--rounds", type=int, default=20)
    bench.add_argument("--timeout-ms", type=int, default=2000)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
