"""Job scheduler using APScheduler.

Two flavours share one job table: a blocking scheduler for the headless
``run`` command, and an asyncio scheduler that ``serve`` starts inside the
API process so jobs and requests act on the same controller.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, NoReturn

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from stockracer.arena import ArenaController
from stockracer.config import SchedulerConfig, Settings
from stockracer.market import MarketDataSource, YahooMarketData

logger = logging.getLogger(__name__)

JOB_DEFAULTS = {"coalesce": True, "max_instances": 1}


# ----------------------------------------------------------------------
# Async jobs (market client already open)
# ----------------------------------------------------------------------


async def trading_round(controller: ArenaController) -> None:
    if not controller.market.is_market_open():
        logger.debug("Market closed, skipping trading round")
        return
    await controller.run_trading_round()


async def daily_summary(controller: ArenaController) -> None:
    await controller.generate_daily_summary()


async def elimination_check(controller: ArenaController) -> None:
    """Eliminate only once the current competition window has run out."""
    status = controller.get_competition_status()
    if status.days_remaining > 0:
        logger.info(f"Round {status.round}: {status.days_remaining} days remaining, no elimination")
        return

    result = await controller.run_elimination()
    names = ", ".join(e.name for e in result.eliminated) or "nobody"
    logger.info(f"Elimination eliminated {names}; now round {result.new_round}")


# ----------------------------------------------------------------------
# Blocking jobs (each opens the market client in a fresh event loop)
# ----------------------------------------------------------------------


def _run(market: MarketDataSource, job: Callable[[], Awaitable]) -> None:
    """Run one async arena job inside a fresh event loop with an open market client."""

    async def run() -> None:
        async with market:
            await job()

    asyncio.run(run())


def trading_round_job(controller: ArenaController, market: MarketDataSource) -> None:
    if not market.is_market_open():
        logger.debug("Market closed, skipping trading round")
        return
    _run(market, controller.run_trading_round)


def daily_summary_job(controller: ArenaController, market: MarketDataSource) -> None:
    _run(market, controller.generate_daily_summary)


def elimination_job(controller: ArenaController, market: MarketDataSource) -> None:
    if controller.get_competition_status().days_remaining > 0:
        logger.info("Competition window still open, no elimination")
        return
    _run(market, lambda: elimination_check(controller))


# ----------------------------------------------------------------------
# Schedulers
# ----------------------------------------------------------------------


def _register_jobs(
    scheduler: BaseScheduler,
    cfg: SchedulerConfig,
    trading: Callable[..., Any],
    summary: Callable[..., Any],
    elimination: Callable[..., Any],
    args: list[Any],
) -> None:
    scheduler.add_job(
        trading,
        IntervalTrigger(minutes=cfg.trading_round_minutes),
        args=args,
        id="trading-round",
        name="Arena: Trading Round",
    )
    logger.info(f"Registered job: Trading Round (every {cfg.trading_round_minutes} min)")

    scheduler.add_job(
        summary,
        CronTrigger(day_of_week="mon-fri", hour=cfg.daily_summary_hour, timezone=cfg.timezone),
        args=args,
        id="daily-summary",
        name="Arena: Daily Summary",
    )
    logger.info(f"Registered job: Daily Summary (weekdays {cfg.daily_summary_hour}:00)")

    scheduler.add_job(
        elimination,
        CronTrigger(
            day_of_week=cfg.elimination_day_of_week,
            hour=cfg.elimination_hour,
            minute=cfg.elimination_minute,
            timezone=cfg.timezone,
        ),
        args=args,
        id="elimination-check",
        name="Arena: Elimination Check",
    )
    logger.info(
        f"Registered job: Elimination Check ({cfg.elimination_day_of_week} "
        f"{cfg.elimination_hour}:{cfg.elimination_minute:02d})"
    )


def build_scheduler(
    settings: Settings, controller: ArenaController, market: YahooMarketData
) -> BlockingScheduler:
    """Register arena jobs on a single worker so they never overlap."""
    cfg = settings.scheduler
    scheduler = BlockingScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        job_defaults=JOB_DEFAULTS,
        timezone=cfg.timezone,
    )
    _register_jobs(
        scheduler,
        cfg,
        trading_round_job,
        daily_summary_job,
        elimination_job,
        [controller, market],
    )
    return scheduler


def build_async_scheduler(settings: Settings, controller: ArenaController) -> AsyncIOScheduler:
    """Arena jobs as coroutines on the running event loop.

    Jobs share the caller's controller and its already-open market client,
    so the controller's in-flight guard also covers API-triggered runs.
    """
    cfg = settings.scheduler
    scheduler = AsyncIOScheduler(job_defaults=JOB_DEFAULTS, timezone=cfg.timezone)
    _register_jobs(
        scheduler,
        cfg,
        trading_round,
        daily_summary,
        elimination_check,
        [controller],
    )
    return scheduler


def start_scheduler(
    settings: Settings, controller: ArenaController, market: YahooMarketData
) -> NoReturn:
    """Start the blocking scheduler with the arena jobs."""
    scheduler = build_scheduler(settings, controller, market)

    try:
        logger.info("Scheduler starting...")
        logger.info(f"{len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("Scheduler stopped cleanly")
