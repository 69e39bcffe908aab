"""FastAPI application exposing the signal service to the dashboard."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from signal_engine.models import TradingSignal
from signal_engine.orchestrator.service import SignalService

logger = structlog.get_logger("api")


def get_service(request: Request) -> SignalService:
    """Dependency to get the service the app was built with."""
    return request.app.state.service


def _serialize(signals: list[TradingSignal]) -> dict:
    return {
        "count": len(signals),
        "signals": [s.model_dump(mode="json") for s in signals],
    }


def create_app(service: SignalService) -> FastAPI:
    """Build the API around an already constructed service.

    The service is closed when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await service.close()
        logger.info("service_closed")

    app = FastAPI(
        title="Trading Signals API",
        description="Signal generation, aggregation and lifecycle endpoints",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    # CORS middleware - adjust origins in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/generators")
    async def list_generators(svc: SignalService = Depends(get_service)):
        """Signal types with an active generator."""
        return {"generators": sorted(t.value for t in svc.generators)}

    @app.get("/api/signals")
    async def list_signals(refresh: bool = False, svc: SignalService = Depends(get_service)):
        """Current signals; ``refresh=true`` bypasses the cache."""
        return _serialize(await svc.fetch_trading_signals(force_refresh=refresh))

    @app.post("/api/signals/status")
    async def update_statuses(svc: SignalService = Depends(get_service)):
        """Re-evaluate every active signal against current prices."""
        return _serialize(await svc.update_all_signals_status())

    @app.post("/api/signals/monitor")
    async def monitor(svc: SignalService = Depends(get_service)):
        """Replace finished signals; returns only the replacements."""
        replacements = await svc.monitor_and_replace_signals()
        logger.info("monitor_requested", replacements=len(replacements))
        return _serialize(replacements)

    return app
