"""Arena: the roster of agents, trading rounds and the elimination cycle."""

from __future__ import annotations

import random

from stockracer.config import Settings
from stockracer.ledger import Ledger
from stockracer.market import MarketDataSource
from stockracer.memory import MemoryStore
from stockracer.storage import ArenaTables

from .controller import ArenaController, mood_for, quote_lookup
from .models import (
    Agent,
    AgentStatus,
    AgentTemplate,
    AgentView,
    Competition,
    CompetitionStatus,
    DailySummary,
    EliminatedRecord,
    EliminationResult,
    GraveyardEntry,
    LeaderboardEntry,
    RoundReport,
)
from .templates import AGENT_TEMPLATES


def create_controller(
    settings: Settings,
    market: MarketDataSource,
    tables: ArenaTables | None = None,
    rng: random.Random | None = None,
) -> ArenaController:
    """Wire ledger, memory and controller over the configured data directory."""
    tables = tables or ArenaTables.on_disk(settings.data_dir)
    ledger = Ledger(tables.portfolios, tables.trades, settings.arena.history_limit)
    memory = MemoryStore(tables.outcomes, tables.observations, tables.beliefs, tables.reflections)
    return ArenaController(settings.arena, ledger, memory, market, tables, rng=rng)


__all__ = [
    "AGENT_TEMPLATES",
    "Agent",
    "AgentStatus",
    "AgentTemplate",
    "AgentView",
    "ArenaController",
    "Competition",
    "CompetitionStatus",
    "DailySummary",
    "EliminatedRecord",
    "EliminationResult",
    "GraveyardEntry",
    "LeaderboardEntry",
    "RoundReport",
    "create_controller",
    "mood_for",
    "quote_lookup",
]
