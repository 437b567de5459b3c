"""Ledger-tail ingestion: line classification and counter updates."""

from ledger_exporter.ingest.classifier import classify_line
from ledger_exporter.ingest.identities import AuthorIdentity, OurAddresses
from ledger_exporter.ingest.schemas import IgnoredMessage, LogEvent, ParseFailure, ProposedBlock, SkippedBlock
from ledger_exporter.ingest.service import IngestState, IngestSummary, LedgerIngestor

__all__ = [
    "AuthorIdentity",
    "IgnoredMessage",
    "IngestState",
    "IngestSummary",
    "LedgerIngestor",
    "LogEvent",
    "OurAddresses",
    "ParseFailure",
    "ProposedBlock",
    "SkippedBlock",
    "classify_line",
]
