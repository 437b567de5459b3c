"""Pytest fixtures for ledger exporter tests."""

from collections.abc import AsyncIterator
import json

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from ledger_exporter.ingest import LedgerIngestor, OurAddresses
from ledger_exporter.lib.metrics import CounterRegistry
from ledger_exporter.main import create_app

OUR_AUTHOR = "029efe69e22c0f7244e6566ad73537c3827801cd75da425f91235890da36888c9b"
OTHER_AUTHOR = "03de1f49f8a52a2f62196a6f88c436a37e5d3cd88b37588f4cab8f1dcdbf18148e"


def ledger_line(message: str, **fields: object) -> str:
    """Build a ledger-tail JSON line as emitted by monad-ledger-tail."""

    record = {
        "timestamp": "2025-08-29T13:10:36.585635Z",
        "level": "INFO",
        "fields": {"message": message, **fields},
        "target": "ledger_tail",
    }
    return json.dumps(record)


@pytest.fixture()
def registry() -> CounterRegistry:
    return CounterRegistry()


@pytest.fixture()
def our_addresses() -> OurAddresses:
    return OurAddresses([f"{OUR_AUTHOR}:chorus1"])


@pytest.fixture()
def ingestor(registry: CounterRegistry, our_addresses: OurAddresses) -> LedgerIngestor:
    return LedgerIngestor(registry, our_addresses)


@pytest.fixture()
def app(registry: CounterRegistry, ingestor: LedgerIngestor) -> FastAPI:
    """Return an application bound to the per-test registry."""
    return create_app(registry, ingestor)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` configured for the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
