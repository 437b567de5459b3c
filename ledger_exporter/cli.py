"""Command-line entrypoint: load settings, bind, start ingesting and serve metrics."""

from __future__ import annotations

import argparse
import socket
from typing import Sequence

import uvicorn

from ledger_exporter.config import ConfigurationError, ListenAddress, load_settings
from ledger_exporter.ingest.identities import OurAddresses
from ledger_exporter.ingest.service import LedgerIngestor
from ledger_exporter.ingest.source import LedgerTailError, LedgerTailProcess, stdin_lines
from ledger_exporter.lib.logger import configure_logging, get_logger
from ledger_exporter.lib.metrics import CounterRegistry
from ledger_exporter.main import create_app

logger = get_logger(__name__)

EXIT_CONFIG_ERROR = 2
EXIT_STARTUP_ERROR = 1


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="monad-ledger-exporter",
        description="Export Monad ledger-tail block events as Prometheus counters",
    )
    parser.add_argument("--listen-addr", help="Address for the metrics endpoint, e.g. 0.0.0.0:9100")
    parser.add_argument(
        "--our-addresses",
        "--known-identity",
        dest="our_addresses",
        action="extend",
        nargs="+",
        metavar="HEX[:NAME]",
        help="Author keys operated by us (repeatable); an optional :name labels them in logs",
    )
    parser.add_argument(
        "--ledger-tail-bin",
        help="Spawn this monad-ledger-tail binary and read its stdout instead of stdin",
    )
    parser.add_argument(
        "--ledger-tail-args",
        help='Extra arguments for monad-ledger-tail; pass with "=", e.g. --ledger-tail-args="--ledger-path=/opt/monad/ledger"',
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser.parse_args(argv)


def bind_socket(address: ListenAddress) -> socket.socket:
    family = socket.AF_INET6 if ":" in address.host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((address.host, address.port))
    except OSError:
        sock.close()
        raise
    return sock


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()

    try:
        settings = load_settings(
            listen_addr=args.listen_addr,
            our_addresses=args.our_addresses,
            ledger_tail_bin=args.ledger_tail_bin,
            ledger_tail_args=args.ledger_tail_args,
            log_level=args.log_level,
        )
    except ConfigurationError as exc:
        logger.error("config.invalid", extra={"error": str(exc)})
        return EXIT_CONFIG_ERROR
    configure_logging(settings.log_level)

    registry = CounterRegistry()
    ingestor = LedgerIngestor(registry, OurAddresses(settings.our_addresses))
    app = create_app(registry, ingestor)

    address = settings.listen_address
    try:
        sock = bind_socket(address)
    except OSError as exc:
        logger.error("server.bind.failed", extra={"listen_addr": str(address), "error": str(exc)})
        return EXIT_STARTUP_ERROR

    if settings.ledger_tail_bin:
        tail = LedgerTailProcess(settings.ledger_tail_bin, settings.ledger_tail_args)
        try:
            tail.start()
        except LedgerTailError as exc:
            logger.error("ledger_tail.start.failed", extra={"error": str(exc)})
            sock.close()
            return EXIT_STARTUP_ERROR
        ingestor.start(tail.lines())
    else:
        ingestor.start(stdin_lines())

    logger.info("server.started", extra={"listen_addr": str(address)})
    config = uvicorn.Config(app, log_config=None, access_log=False, timeout_keep_alive=5)
    uvicorn.Server(config).run(sockets=[sock])
    return 0


def run() -> None:
    raise SystemExit(main())
