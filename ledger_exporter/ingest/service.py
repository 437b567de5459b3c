"""Ingest loop feeding classified ledger events into the counter registry."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ledger_exporter.ingest.classifier import classify_line
from ledger_exporter.ingest.identities import OurAddresses
from ledger_exporter.ingest.schemas import ParseFailure, ProposedBlock, SkippedBlock
from ledger_exporter.lib.logger import get_logger
from ledger_exporter.lib.metrics import CounterRegistry

LINES_PARSED = "monad_ledger_exporter_lines_parsed"
PROPOSED_BLOCKS = "monad_proposed_blocks"
SKIPPED_BLOCKS = "monad_skipped_blocks"

_FAMILIES = {
    LINES_PARSED: "Number of lines parsed by the ledger exporter",
    PROPOSED_BLOCKS: "Number of proposed blocks by author.",
    SKIPPED_BLOCKS: "Number of skipped blocks by author.",
}

_SUCCESS = {"status": "success"}
_FAILURE = {"status": "failure"}

logger = get_logger(__name__)


class IngestState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class IngestSummary:
    lines: int = 0
    succeeded: int = 0
    failed: int = 0
    blank: int = 0


def declare_metrics(registry: CounterRegistry) -> None:
    """Declare the exporter's counter families and seed the parse-status series."""

    for name, help_text in _FAMILIES.items():
        registry.declare(name, help_text)
    registry.touch(LINES_PARSED, _SUCCESS)
    registry.touch(LINES_PARSED, _FAILURE)


class LedgerIngestor:
    """Consume ledger-tail lines in arrival order and update counters."""

    def __init__(self, registry: CounterRegistry, our_addresses: OurAddresses) -> None:
        self._registry = registry
        self._our_addresses = our_addresses
        self._state = IngestState.IDLE
        self._state_lock = threading.Lock()
        self.summary = IngestSummary()
        declare_metrics(registry)

    @property
    def state(self) -> IngestState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: IngestState) -> None:
        with self._state_lock:
            self._state = state

    def ingest_line(self, line: str) -> None:
        if not line.strip():
            self.summary.blank += 1
            return

        self.summary.lines += 1
        result = classify_line(line)
        if isinstance(result, ParseFailure):
            self.summary.failed += 1
            self._registry.increment(LINES_PARSED, _FAILURE)
            logger.warning(
                "ingest.line.failed",
                extra={"reason": result.reason, "detail": result.detail, "line": line.rstrip("\r\n")},
            )
            return

        self.summary.succeeded += 1
        self._registry.increment(LINES_PARSED, _SUCCESS)
        if isinstance(result, ProposedBlock):
            family = PROPOSED_BLOCKS
        elif isinstance(result, SkippedBlock):
            family = SKIPPED_BLOCKS
        else:
            logger.debug("ingest.line.ignored", extra={"ledger_message": result.message})
            return

        identity = self._our_addresses.identify(result.author, result.author_dns)
        self._registry.increment(family, identity.labels())

    def run(self, stream: Iterable[str]) -> IngestSummary:
        """Ingest until end of input or an I/O error; neither is re-raised."""

        self._set_state(IngestState.RUNNING)
        logger.info(
            "ingest.started",
            extra={"our_addresses": self._our_addresses.describe()},
        )
        try:
            for line in stream:
                self.ingest_line(line)
        except (OSError, UnicodeDecodeError):
            logger.exception("ingest.stream.error", extra={"lines": self.summary.lines})
        finally:
            self._set_state(IngestState.STOPPED)

        logger.info(
            "ingest.stopped",
            extra={
                "lines": self.summary.lines,
                "succeeded": self.summary.succeeded,
                "failed": self.summary.failed,
                "blank": self.summary.blank,
            },
        )
        return self.summary

    def start(self, stream: Iterable[str]) -> threading.Thread:
        """Run the loop on a daemon thread and return it."""

        thread = threading.Thread(target=self.run, args=(stream,), name="ledger-ingest", daemon=True)
        thread.start()
        return thread
