"""Prometheus exporter for Monad ledger-tail consensus events."""

__version__ = "0.1.0"
