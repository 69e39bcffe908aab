#!/usr/bin/env python3
"""FastAPI server runner."""

import argparse

import structlog
import uvicorn

from signal_engine.api.app import create_app
from signal_engine.config.loader import load_config
from signal_engine.exchange.binance import BinanceClient
from signal_engine.logging.setup import setup_logging
from signal_engine.orchestrator.runner import build_store
from signal_engine.orchestrator.service import SignalService

logger = structlog.get_logger()


def main(config_path: str | None = None, port: int = 8000, in_memory: bool = False):
    """Build the service from config and serve the API."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)

    feed = BinanceClient(base_url=config.exchange.base_url, timeout_s=config.exchange.timeout_s)
    service = SignalService(config, feed, build_store(config, in_memory))
    app = create_app(service)

    logger.info("Starting FastAPI server", port=port)

    try:
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=port,
            log_config=None  # Use our structlog setup
        )
    except Exception as e:
        logger.error("Failed to start server", error=str(e))
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trading signals API server")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--memory", action="store_true", help="Keep signals in memory")
    args = parser.parse_args()
    main(config_path=args.config, port=args.port, in_memory=args.memory)
