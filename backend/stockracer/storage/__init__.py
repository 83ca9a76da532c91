"""Storage layer for StockRacer - file-based persistence per logical table.

This package provides:
- The Table port (load/save full-state rewrites, last writer wins)
- YAML and JSON file tables with atomic writes
- An in-memory table for tests and throwaway arenas
- ArenaTables, the set of tables one arena needs
"""

from dataclasses import dataclass
from pathlib import Path

from .tables import InMemoryTable, JsonTable, Table, YamlTable


@dataclass
class ArenaTables:
    """Every logical table used by the ledger, memory store and controller."""

    portfolios: Table
    trades: Table
    outcomes: Table
    observations: Table
    beliefs: Table
    reflections: Table
    agents: Table
    competition: Table
    graveyard: Table
    summaries: Table

    @classmethod
    def on_disk(cls, data_dir: Path) -> "ArenaTables":
        """Tables under data_dir; state in YAML, append-heavy logs in JSON."""
        memory_dir = data_dir / "memory"
        return cls(
            portfolios=YamlTable(data_dir / "portfolios.yaml"),
            trades=JsonTable(data_dir / "trades.json"),
            outcomes=JsonTable(memory_dir / "trade_outcomes.json"),
            observations=JsonTable(memory_dir / "observations.json"),
            beliefs=JsonTable(memory_dir / "beliefs.json"),
            reflections=JsonTable(memory_dir / "reflections.json"),
            agents=YamlTable(data_dir / "agents.yaml"),
            competition=YamlTable(data_dir / "competition.yaml"),
            graveyard=YamlTable(data_dir / "graveyard.yaml"),
            summaries=YamlTable(data_dir / "daily_summaries.yaml"),
        )

    @classmethod
    def in_memory(cls) -> "ArenaTables":
        return cls(
            portfolios=InMemoryTable("portfolios"),
            trades=InMemoryTable("trades"),
            outcomes=InMemoryTable("trade_outcomes"),
            observations=InMemoryTable("observations"),
            beliefs=InMemoryTable("beliefs"),
            reflections=InMemoryTable("reflections"),
            agents=InMemoryTable("agents"),
            competition=InMemoryTable("competition"),
            graveyard=InMemoryTable("graveyard"),
            summaries=InMemoryTable("daily_summaries"),
        )


__all__ = [
    "ArenaTables",
    "InMemoryTable",
    "JsonTable",
    "Table",
    "YamlTable",
]
