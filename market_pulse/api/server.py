"""
HTTP surface for the market-pulse service.

Endpoints:
  GET /market-pulse/{ticker}  → MarketPulseResult JSON | 400 / 500 {"error": ...}
  GET /health                 → {"status": "UP", "timestamp": ISO-8601}

Usage:
    uvicorn market_pulse.api.server:create_app --factory --port 3001
"""

import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_pulse.core.config import load_config, section
from market_pulse.core.errors import MarketPulseError, ValidationError
from market_pulse.core.logger import logger
from market_pulse.models.datatypes import isoformat_utc, utc_now
from market_pulse.pipeline.engine import PulseEngine


def create_app(
    engine: Optional[PulseEngine] = None,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """Build the FastAPI app around a single, process-wide :class:`PulseEngine`.

    Args:
        engine: Pre-built engine (tests inject one with fake providers).
        config: Loaded configuration; read from ``config.yaml`` when both
            ``engine`` and ``config`` are omitted.
    """
    if engine is None:
        config = config if config is not None else load_config()
        engine = PulseEngine.from_config(config)
    cors_cfg = section(config or {}, "cors")

    app = FastAPI(
        title="Market Pulse API",
        description="Composite sentiment snapshot per ticker from price history, news, and an AI judgment.",
        version="1.0.0",
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_cfg.get("allow_origins", ["*"]),
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        logger.info(
            f"HTTP: {request.method} {request.url.path} → {response.status_code} "
            f"in {time.time() - start_time:.2f}s"
        )
        return response

    # ------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------
    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning(f"HTTP: rejected ticker {exc.raw_ticker!r}")
        return JSONResponse(status_code=400, content={"error": "Invalid ticker format."})

    @app.exception_handler(MarketPulseError)
    async def handle_pipeline_error(request: Request, exc: MarketPulseError) -> JSONResponse:
        logger.error(f"HTTP: request failed for {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"HTTP: unexpected error for {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error."})

    # ------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------
    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "UP", "timestamp": isoformat_utc(utc_now())}

    @app.get("/market-pulse/{ticker}")
    async def market_pulse(ticker: str, request: Request) -> Dict[str, Any]:
        """Return the composite sentiment snapshot for ``ticker``."""
        result = await request.app.state.engine.get_market_pulse(ticker)
        return result.to_dict()

    return app
