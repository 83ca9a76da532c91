"""StockRacer CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from stockracer import __version__
from stockracer.arena import ArenaController, create_controller
from stockracer.config import Settings, get_settings
from stockracer.market import YahooMarketData

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# StockRacer Configuration
# Operational parameters for the arena. Secrets (ADMIN_SECRET, LOGFIRE_TOKEN)
# belong in .env, not here.

arena:
  starting_cash: 25.0
  history_limit: 100
  competition_days: 14
  eliminations_per_cycle: 2
  min_active_for_elimination: 3
  summaries_kept: 30

market:
  timeout_seconds: 15
  max_retries: 2
  min_request_interval_ms: 200
  quote_cache_seconds: 15
  analysis_cache_seconds: 120

scheduler:
  timezone: America/New_York
  trading_round_minutes: 30
  daily_summary_hour: 17
  elimination_day_of_week: fri
  elimination_hour: 16
  elimination_minute: 30

api:
  host: 0.0.0.0
  port: 3005
"""


def _init_logfire(app=None) -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from stockracer.observability import initialize_logfire

        initialize_logfire(get_settings(), app)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _build_arena(settings: Settings) -> tuple[ArenaController, YahooMarketData]:
    market = YahooMarketData(settings.market)
    controller = create_controller(settings, market)
    controller.initialize()
    return controller, market


async def _with_market(market: YahooMarketData, coro_fn):
    async with market:
        return await coro_fn()


def _print_leaderboard(entries) -> None:
    for e in entries:
        flag = "  <- danger" if e.in_danger else ""
        print(
            f"  #{e.rank} {e.name:<11} Gen {e.generation}  "
            f"${e.current_value:,.2f} ({e.total_return_percent:+.2f}%)  "
            f"{e.trades_count} trades{flag}"
        )


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory, configuration and the founding roster."""
    data_dir = Path("data").resolve()

    try:
        (data_dir / "memory").mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        get_settings.cache_clear()
        controller, _ = _build_arena(get_settings())

        print(f"\nArena initialized at {data_dir} with {len(controller.agents)} agents")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and set ADMIN_SECRET")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m stockracer config' to verify configuration")
        print("4. Run 'python -m stockracer serve' to start the API and the scheduler\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\nInitialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== StockRacer Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Arena:")
        print(f"  Starting Cash: ${settings.arena.starting_cash:,.2f}")
        print(f"  Competition Days: {settings.arena.competition_days}")
        print(f"  Eliminations Per Cycle: {settings.arena.eliminations_per_cycle}")
        print(f"  History Limit: {settings.arena.history_limit}\n")

        print("Market Data:")
        print(f"  Base URL: {settings.market.base_url}")
        print(f"  Request Interval: {settings.market.min_request_interval_ms} ms")
        print(f"  Quote Cache: {settings.market.quote_cache_seconds}s")
        print(f"  Analysis Cache: {settings.market.analysis_cache_seconds}s\n")

        print("Scheduler:")
        print(f"  Timezone: {settings.scheduler.timezone}")
        print(f"  Trading Round: every {settings.scheduler.trading_round_minutes} min")
        print(f"  Daily Summary: weekdays {settings.scheduler.daily_summary_hour}:00")
        print(
            f"  Elimination Check: {settings.scheduler.elimination_day_of_week} "
            f"{settings.scheduler.elimination_hour}:{settings.scheduler.elimination_minute:02d}\n"
        )

        print("Secrets:")
        print(f"  Admin Secret: {'Set' if settings.admin_secret else 'Not set'}")
        print(f"  Logfire: {'Set' if settings.logfire_token else 'Not set'}\n")

        return 0

    except ValidationError as e:
        print("\nConfiguration Error:\n")
        for error in e.errors():
            print(f"  - {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\nFailed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display competition status and every agent's cash and positions."""
    try:
        controller, _ = _build_arena(get_settings())
        status = controller.get_competition_status()

        print("\n=== StockRacer Arena Status ===\n")
        print(f"Round: {status.round} ({status.days_remaining} days remaining)")
        print(f"Graveyard: {len(controller.graveyard)} eliminated\n")

        for view in controller.get_all_agents():
            agent, portfolio = view.agent, view.portfolio
            cash = portfolio.cash if portfolio else 0.0
            held = ", ".join(portfolio.positions) if portfolio and portfolio.positions else "-"
            print(f"  {agent.name:<11} Gen {agent.generation}  cash ${cash:,.2f}  holding: {held}")
        print()

        return 0

    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\nFailed to read status: {e}\n")
        return 1


def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Value every active agent at live prices and print the ranking."""
    try:
        controller, market = _build_arena(get_settings())
        entries = asyncio.run(_with_market(market, controller.get_leaderboard))

        print("\n=== Leaderboard ===\n")
        _print_leaderboard(entries)
        print()
        return 0

    except Exception as e:
        logger.error(f"Leaderboard failed: {e}", exc_info=True)
        print(f"\nLeaderboard failed: {e}\n")
        return 1


def cmd_round(args: argparse.Namespace) -> int:
    """Run a single trading round now, regardless of market hours."""
    _init_logfire()

    try:
        controller, market = _build_arena(get_settings())
        report = asyncio.run(_with_market(market, controller.run_trading_round))

        print("\nTrading round complete\n")
        print(f"Quotes: {report.quotes}  Analyses: {report.analyses}")
        for agent in report.agents:
            if agent.error:
                print(f"  {agent.agent_key:<11} ERROR {agent.error}")
            elif agent.skipped:
                print(f"  {agent.agent_key:<11} sat out")
            else:
                print(f"  {agent.agent_key:<11} {agent.trades_made} trades  ${agent.value or 0:,.2f}")
        print()
        return 0

    except Exception as e:
        logger.error(f"Trading round failed: {e}", exc_info=True)
        print(f"\nTrading round failed: {e}\n")
        return 1


def cmd_eliminate(args: argparse.Namespace) -> int:
    """Run the elimination cycle now."""
    _init_logfire()

    try:
        controller, market = _build_arena(get_settings())
        result = asyncio.run(_with_market(market, controller.run_elimination))

        if not result.eliminated:
            print("\nNo elimination (not enough active agents)\n")
            return 0

        print(f"\nElimination complete, now round {result.new_round}\n")
        for record in result.eliminated:
            print(
                f"  {record.name} Gen {record.generation}: "
                f"${record.final_value:,.2f} ({record.final_return:+.2f}%)"
            )
        print()
        return 0

    except Exception as e:
        logger.error(f"Elimination failed: {e}", exc_info=True)
        print(f"\nElimination failed: {e}\n")
        return 1


def cmd_summary(args: argparse.Namespace) -> int:
    """Generate today's summary and agent reflections."""
    try:
        controller, market = _build_arena(get_settings())
        summary = asyncio.run(_with_market(market, controller.generate_daily_summary))

        print(f"\n=== Daily Summary {summary.date:%Y-%m-%d} ===\n")
        for row in summary.leaderboard:
            print(f"  #{row.rank} {row.name:<11} ${row.value:,.2f} ({row.return_percent:+.2f}%)")
        print(f"\nTrades today: {summary.total_trades_today}\n")
        return 0

    except Exception as e:
        logger.error(f"Summary failed: {e}", exc_info=True)
        print(f"\nSummary failed: {e}\n")
        return 1


def cmd_graveyard(args: argparse.Namespace) -> int:
    """List eliminated agents, most recent first."""
    try:
        controller, _ = _build_arena(get_settings())
        entries = controller.get_graveyard()

        print("\n=== Graveyard ===\n")
        if not entries:
            print("  (empty)")
        for entry in entries:
            print(
                f"  {entry.agent.name} Gen {entry.agent.generation}  round {entry.eliminated_round}  "
                f"${entry.final_value:,.2f} ({entry.final_return_percent:+.2f}%)  "
                f"{entry.eliminated_at:%Y-%m-%d}"
            )
        print()
        return 0

    except Exception as e:
        logger.error(f"Failed to read graveyard: {e}")
        print(f"\nFailed to read graveyard: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the arena scheduler without the HTTP API."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        from stockracer.scheduler import start_scheduler

        settings = get_settings()
        controller, market = _build_arena(settings)

        print("\n=== StockRacer Arena ===\n")
        print(f"Version: {__version__}")
        print(f"Agents: {controller.active_agent_count()} active")
        print(f"Starting Cash: ${settings.arena.starting_cash:,.2f}")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Starting scheduler...\n")
        start_scheduler(settings, controller, market)

        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start system: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP API with uvicorn, running the arena jobs in-process."""
    try:
        import uvicorn

        from stockracer.api import create_app

        settings = get_settings()
        market = YahooMarketData(settings.market)
        controller = create_controller(settings, market)
        app = create_app(controller, settings, market, run_jobs=not args.no_scheduler)
        _init_logfire(app)

        uvicorn.run(
            app,
            host=args.host or settings.api.host,
            port=args.port or settings.api.port,
        )
        return 0

    except Exception as e:
        logger.error(f"Failed to start API: {e}", exc_info=True)
        print(f"\nFailed to start API: {e}\n")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="StockRacer: paper-trading arena of competing rule-based agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"StockRacer {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory, configuration and agents",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display competition status and portfolios",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_leaderboard = subparsers.add_parser(
        "leaderboard",
        help="Rank active agents at live prices",
    )
    parser_leaderboard.set_defaults(func=cmd_leaderboard)

    parser_round = subparsers.add_parser(
        "round",
        help="Run one trading round now",
    )
    parser_round.set_defaults(func=cmd_round)

    parser_eliminate = subparsers.add_parser(
        "eliminate",
        help="Run the elimination cycle now",
    )
    parser_eliminate.set_defaults(func=cmd_eliminate)

    parser_summary = subparsers.add_parser(
        "summary",
        help="Generate the daily summary and reflections",
    )
    parser_summary.set_defaults(func=cmd_summary)

    parser_graveyard = subparsers.add_parser(
        "graveyard",
        help="List eliminated agents",
    )
    parser_graveyard.set_defaults(func=cmd_graveyard)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the scheduler headless (use instead of serve, not alongside it)",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Serve the HTTP API and run the scheduled jobs",
    )
    parser_serve.add_argument("--host", default=None, help="Bind address")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port")
    parser_serve.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Serve read-only views without running the arena jobs",
    )
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
