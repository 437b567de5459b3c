"""FastAPI application serving the exporter's counters."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from ledger_exporter import __version__
from ledger_exporter.ingest.service import IngestState, LedgerIngestor
from ledger_exporter.lib.metrics import CONTENT_TYPE, CounterRegistry


def create_app(registry: CounterRegistry, ingestor: LedgerIngestor | None = None) -> FastAPI:
    """Build the metrics application around an explicitly constructed registry."""

    app = FastAPI(title="Monad Ledger Exporter", version=__version__)
    app.state.metrics = registry
    app.state.ingestor = ingestor

    @app.get("/metrics", tags=["system"], summary="Prometheus metrics")
    async def metrics_endpoint(request: Request) -> Response:
        metrics: CounterRegistry = request.app.state.metrics
        return Response(content=metrics.render(), media_type=CONTENT_TYPE)

    @app.get("/health", tags=["system"], summary="Health check")
    async def health_check(request: Request) -> JSONResponse:
        """Return liveness response including the ingest loop state."""

        current: LedgerIngestor | None = request.app.state.ingestor
        state = current.state if current is not None else IngestState.IDLE
        payload = {"ok": True, "data": {"status": "healthy", "ingest": state.value}}
        return JSONResponse(content=payload)

    return app
