from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from .constants import (
    DEFAULT_ALGORITHM,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_QUOTE,
    DEFAULT_REPLY_SIZE,
    DEFAULT_TIMEOUT_MS,
)
from .controller import FailoverController
from .errors import ExhaustedError, ResolutionError, TransportError
from .net import Impairment
from .server import Responder, padded_quote
from .stream import StreamClient

log = logging.getLogger("vudp")


def cmd_fetch(args: argparse.Namespace) -> int:
    try:
        result = FailoverController(
            args.host,
            args.port,
            args.request,
            max_attempts=args.max_attempts,
            timeout_ms=args.timeout_ms,
            algorithm=args.algorithm,
        ).run()
    except (ValueError, ResolutionError, ExhaustedError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "endpoint": str(result.endpoint),
            "digest": result.digest.hex(),
            "message": result.payload.decode("utf-8", errors="replace"),
            "sends": result.sends,
            "timeouts": result.timeouts,
            "seconds": result.duration_s,
        }
        print(json.dumps(payload, indent=2))
    else:
        sys.stdout.write(result.payload.decode("utf-8", errors="replace") + "\n")
        print(f"Hash:{result.digest.hex()}")
    return 0


def cmd_stream(args: argparse.Namespace) -> int:
    out = sys.stdout.buffer
    try:
        with StreamClient(args.host, args.port) as client:
            for stats in client.reads():
                out.write(stats.data)
                out.flush()
                log.debug(
                    "total=%d last=%04d duration=%.6f elapsed=%.2f",
                    stats.total_bytes,
                    stats.last_read,
                    stats.read_duration_s,
                    stats.elapsed_s,
                )
    except (ResolutionError, TransportError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    reply = padded_quote(args.quote.encode("utf-8"), args.reply_size)
    responder = Responder.listening(
        args.listen_host,
        args.listen_port,
        impairment=Impairment(args.loss_rate, args.delay_ms),
        reply=reply,
        corrupt=args.corrupt,
        truncate=args.truncate,
    )
    stats = responder.serve_forever(max_requests=args.max_requests)
    print(json.dumps({"role": "responder", **asdict(stats)}))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="vudp", description="Verified request/response over UDP.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    fetch = sub.add_parser("fetch", help="send a request and print the verified reply")
    fetch.add_argument("host")
    fetch.add_argument("port")
    fetch.add_argument("request")
    fetch.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    fetch.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
    fetch.add_argument("--algorithm", default=DEFAULT_ALGORITHM)
    fetch.add_argument("--json", action="store_true")
    fetch.set_defaults(func=cmd_fetch)

    stream = sub.add_parser("stream", help="copy a TCP stream to stdout")
    stream.add_argument("host")
    stream.add_argument("port")
    stream.set_defaults(func=cmd_stream)

    serve = sub.add_parser("serve", help="run a reference responder")
    serve.add_argument("--listen-host", default="0.0.0.0")
    serve.add_argument("--listen-port", type=int, required=True)
    serve.add_argument("--quote", default=DEFAULT_QUOTE.decode("utf-8"))
    serve.add_argument("--reply-size", type=int, default=DEFAULT_REPLY_SIZE)
    serve.add_argument("--loss-rate", type=float, default=0.0)
    serve.add_argument("--delay-ms", type=int, default=0)
    serve.add_argument("--corrupt", action="store_true", help="send a wrong digest")
    serve.add_argument("--truncate", action="store_true", help="send a reply shorter than the digest")
    serve.add_argument("--max-requests", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
