"""Arena state: agents, competition window, graveyard, leaderboard and reports."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from stockracer.ledger import Performance, Portfolio
from stockracer.ledger.models import utc_now
from stockracer.memory import MemorySummary
from stockracer.strategies import StrategyKind


class AgentStatus(StrEnum):
    ACTIVE = "active"
    ELIMINATED = "eliminated"


class AgentTemplate(BaseModel):
    """Personality profile a fresh agent is created from."""

    name: str
    personality: str
    avatar: str = ""
    color: str = "#64748b"
    strategy: StrategyKind
    risk_tolerance: float = Field(default=0.5, ge=0, le=1)
    trade_frequency: float = Field(ge=0, le=1)
    preferred_symbols: list[str] = Field(default_factory=list)
    avoid_symbols: list[str] = Field(default_factory=list)


class Agent(AgentTemplate):
    key: str
    generation: int = Field(default=1, ge=1)
    status: AgentStatus = AgentStatus.ACTIVE
    kills: int = 0  # Rivals outlasted across elimination cycles
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_template(cls, key: str, template: AgentTemplate, generation: int = 1) -> Agent:
        return cls(key=key, generation=generation, **template.model_dump())

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE


class AgentView(BaseModel):
    """Agent with its current portfolio and performance."""

    agent: Agent
    portfolio: Portfolio | None = None
    performance: Performance | None = None


class EliminatedRecord(BaseModel):
    key: str
    name: str
    generation: int
    final_value: float
    final_return: float


class Competition(BaseModel):
    round: int = Field(default=1, ge=1)
    start_date: datetime
    end_date: datetime
    eliminated: list[EliminatedRecord] = Field(default_factory=list)


class CompetitionStatus(Competition):
    days_remaining: int = 0


class GraveyardEntry(BaseModel):
    agent: Agent
    final_value: float
    final_return_percent: float
    eliminated_at: datetime = Field(default_factory=utc_now)
    eliminated_round: int
    memory_summary: MemorySummary


class LeaderboardEntry(BaseModel):
    key: str
    name: str
    avatar: str
    color: str
    personality: str
    strategy: StrategyKind
    current_value: float
    total_return: float
    total_return_percent: float
    trades_count: int = 0
    generation: int
    rank: int = 0
    in_danger: bool = False


class EliminationResult(BaseModel):
    eliminated: list[EliminatedRecord] = Field(default_factory=list)
    new_round: int | None = None


class SummaryRow(BaseModel):
    rank: int
    name: str
    value: float
    return_percent: float


class DailySummary(BaseModel):
    date: datetime = Field(default_factory=utc_now)
    leaderboard: list[SummaryRow] = Field(default_factory=list)
    top_performer: LeaderboardEntry | None = None
    worst_performer: LeaderboardEntry | None = None
    total_trades_today: int = 0
    competition: CompetitionStatus


class AgentRoundSummary(BaseModel):
    agent_key: str
    skipped: bool = False
    trades_made: int = 0
    failures: list[str] = Field(default_factory=list)
    value: float | None = None
    error: str | None = None


class RoundReport(BaseModel):
    """What one trading round did."""

    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime | None = None
    skipped: bool = False  # Another round was still in flight
    quotes: int = 0
    analyses: int = 0
    agents: list[AgentRoundSummary] = Field(default_factory=list)

    @property
    def trades_made(self) -> int:
        return sum(a.trades_made for a in self.agents)
