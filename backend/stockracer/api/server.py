"""FastAPI server exposing the arena's read models and admin triggers."""

import logging
import secrets
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from stockracer import __version__
from stockracer.arena import ArenaController
from stockracer.config import Settings
from stockracer.exceptions import MarketDataError
from stockracer.market import MarketDataSource, next_market_close, next_market_open
from stockracer.scheduler import build_async_scheduler

logger = logging.getLogger(__name__)

REFLECTIONS_LIMIT = 14


def create_app(
    controller: ArenaController,
    settings: Settings,
    market: MarketDataSource,
    run_jobs: bool = False,
) -> FastAPI:
    """Build the API around an already-constructed controller.

    With ``run_jobs`` the arena jobs are scheduled on the server's own event
    loop against the same controller, so requests always see the state the
    jobs produce.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with AsyncExitStack() as stack:
            if hasattr(market, "__aenter__"):
                await stack.enter_async_context(market)
            controller.initialize()
            app.state.scheduler = None
            if run_jobs:
                scheduler = build_async_scheduler(settings, controller)
                scheduler.start()
                stack.callback(scheduler.shutdown, wait=False)
                app.state.scheduler = scheduler
                logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")
            logger.info(f"API ready with {controller.active_agent_count()} active agents")
            yield

    app = FastAPI(title="StockRacer Arena API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _require_admin(key: str | None) -> None:
        expected = settings.admin_secret
        if not expected or not key or not secrets.compare_digest(key, expected):
            raise HTTPException(status_code=401, detail="Unauthorized")

    def _require_agent(key: str) -> None:
        if key not in controller.agents:
            raise HTTPException(status_code=404, detail="Agent not found")

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/agents")
    async def list_agents():
        """All agents with portfolio and performance."""
        return controller.get_all_agents()

    @app.get("/api/agents/{key}")
    async def get_agent(key: str):
        view = controller.get_agent(key)
        if view is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return view

    @app.get("/api/agents/{key}/trades")
    async def get_agent_trades(key: str, limit: int = Query(default=50, ge=1, le=1000)):
        _require_agent(key)
        return controller.ledger.get_trade_history(key, limit)

    @app.get("/api/agents/{key}/memory")
    async def get_agent_memory(key: str):
        _require_agent(key)
        return controller.memory.summary(key)

    @app.get("/api/agents/{key}/reflections")
    async def get_agent_reflections(key: str):
        _require_agent(key)
        return controller.memory.reflections(key, REFLECTIONS_LIMIT)

    @app.get("/api/leaderboard")
    async def leaderboard():
        return await controller.get_leaderboard()

    @app.get("/api/trades")
    async def recent_trades(limit: int | None = Query(default=None, ge=1, le=1000)):
        return controller.ledger.get_all_trades(limit or settings.api.default_trade_limit)

    @app.get("/api/competition")
    async def competition():
        return controller.get_competition_status()

    @app.get("/api/graveyard")
    async def graveyard():
        return controller.get_graveyard()

    @app.get("/api/summary")
    async def summaries():
        return controller.get_daily_summaries()

    @app.get("/api/market/status")
    async def market_status():
        return {
            "is_open": market.is_market_open(),
            "next_open": next_market_open().isoformat(),
            "next_close": next_market_close().isoformat(),
        }

    @app.get("/api/quote/{symbol}")
    async def quote(symbol: str):
        try:
            return await market.get_quote(symbol.upper())
        except MarketDataError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/api/admin/trigger-trading")
    async def trigger_trading(key: str | None = None):
        _require_admin(key)
        report = await controller.run_trading_round()
        return {"ok": not report.skipped, "message": "Trading round executed", "report": report}

    @app.post("/api/admin/trigger-elimination")
    async def trigger_elimination(key: str | None = None):
        _require_admin(key)
        return await controller.run_elimination()

    return app
