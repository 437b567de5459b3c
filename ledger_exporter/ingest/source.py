"""Input streams for the ingest loop: stdin or a spawned monad-ledger-tail."""

from __future__ import annotations

import io
import shlex
import subprocess
import sys
from typing import IO, Iterator

from ledger_exporter.lib.logger import get_logger

logger = get_logger(__name__)


class LedgerTailError(RuntimeError):
    """Raised when the monad-ledger-tail child cannot be started."""


def stdin_lines() -> IO[str]:
    """Return standard input as a UTF-8 text stream."""

    return io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="strict")


class LedgerTailProcess:
    """Spawn monad-ledger-tail and expose its stdout line by line."""

    def __init__(self, binary: str, args: str = "") -> None:
        self.binary = binary
        self.args = shlex.split(args)
        self._process: subprocess.Popen[str] | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def start(self) -> None:
        try:
            self._process = subprocess.Popen(
                [self.binary, *self.args],
                stdout=subprocess.PIPE,
                stderr=None,
                encoding="utf-8",
            )
        except OSError as exc:
            raise LedgerTailError(f"failed to start monad-ledger-tail at {self.binary}: {exc}") from exc

        logger.info("ledger_tail.started", extra={"pid": self._process.pid, "binary": self.binary})
        status = self._process.poll()
        if status is not None and status != 0:
            raise LedgerTailError(f"monad-ledger-tail exited immediately with status {status}")

    def lines(self) -> Iterator[str]:
        if self._process is None or self._process.stdout is None:
            raise LedgerTailError("monad-ledger-tail has not been started")
        try:
            yield from self._process.stdout
        finally:
            self.wait()

    def wait(self) -> int | None:
        if self._process is None:
            return None
        status = self._process.wait()
        if status != 0:
            logger.error("ledger_tail.exited", extra={"status": status})
        else:
            logger.info("ledger_tail.exited", extra={"status": status})
        return status
