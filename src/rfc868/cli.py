from __future__ import annotations

import argparse
import json
import logging
import signal
import threading

from .client import Transport, request
from .constants import (
    DEFAULT_BACKLOG,
    DEFAULT_CLIENT_TIMEOUT_S,
    EXIT_BAD_ADDRESS,
    EXIT_ERROR,
    EXIT_NO_TRANSPORT,
    EXIT_OK,
    TIME_PORT,
)
from .errors import ConfigurationError
from .server import ServerConfig, TimeServer

log = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace, stop_event: threading.Event | None = None) -> int:
    config = ServerConfig(
        bind_address=args.interface,
        port=args.port,
        backlog=args.backlog,
        use_tcp=not args.no_tcp,
        use_udp=not args.no_udp,
    )
    if not (config.use_tcp or config.use_udp):
        log.error("Error - TCP or UDP (or both) must be enabled!")
        return EXIT_NO_TRANSPORT

    stop_event = stop_event or threading.Event()
    server = TimeServer(config)
    try:
        running = server.start()
    except ConfigurationError as e:
        log.error("%s", e)
        return EXIT_BAD_ADDRESS
    if not running:
        server.stop()
        log.error("no listener could be started")
        return EXIT_ERROR

    def on_signal(signum, _frame):
        log.info("received %s", signal.Signals(signum).name)
        stop_event.set()

    previous = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, on_signal)

    try:
        stop_event.wait()
    finally:
        server.stop()
        for signum, handler in previous.items():
            signal.signal(signum, handler)
        log.info("Closed socket(s), shutting down.")
    return EXIT_OK


def cmd_query(args: argparse.Namespace) -> int:
    try:
        r = request(args.inet_addr, transport=args.transport, port=args.port, timeout_s=args.timeout)
    except (OSError, ValueError) as e:
        log.error("%s time request to %s failed: %s", args.transport.value.upper(), args.inet_addr, e)
        return EXIT_ERROR

    if args.json:
        payload = {
            "role": "client",
            "transport": args.transport.value,
            "raw": r.raw.hex(),
            "value": r.value,
            "time": r.when.isoformat(),
        }
        print(json.dumps(payload, indent=2))
    else:
        print(r.describe())
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rfc868", description="RFC868 Time Protocol server and client (TCP + UDP).")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--port", type=int, default=TIME_PORT)

    serve = sub.add_parser("serve", help="serve the time over TCP and UDP")
    add_common(serve)
    serve.add_argument("-i", "--interface", default=None, metavar="INET_ADDR", help="Inet Address on which to listen")
    serve.add_argument("-u", "--no-tcp", action="store_true", help="UDP only (disable TCP listener)")
    serve.add_argument("-t", "--no-udp", action="store_true", help="TCP only (disable UDP listener)")
    serve.add_argument("--backlog", type=int, default=DEFAULT_BACKLOG)
    serve.set_defaults(func=cmd_serve)

    query = sub.add_parser("query", help="ask a time server for the time")
    add_common(query)
    query.add_argument("-i", "--inet-addr", default="127.0.0.1", help="Inet Address to send request (server address)")
    mode = query.add_mutually_exclusive_group()
    mode.add_argument("-t", "--tcp", dest="transport", action="store_const", const=Transport.TCP, help="use TCP (default)")
    mode.add_argument("-u", "--udp", dest="transport", action="store_const", const=Transport.UDP, help="use UDP")
    query.add_argument("--timeout", type=float, default=DEFAULT_CLIENT_TIMEOUT_S)
    query.add_argument("--json", action="store_true")
    query.set_defaults(func=cmd_query, transport=Transport.TCP)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
