"""Shared fixtures over in-memory tables and a scripted market."""

import pytest

from factories import FakeMarket
from stockracer.config import ArenaConfig
from stockracer.ledger import Ledger
from stockracer.memory import MemoryStore
from stockracer.storage import ArenaTables


@pytest.fixture
def tables():
    return ArenaTables.in_memory()


@pytest.fixture
def ledger(tables):
    return Ledger(tables.portfolios, tables.trades, history_limit=100)


@pytest.fixture
def memory(tables):
    return MemoryStore(tables.outcomes, tables.observations, tables.beliefs, tables.reflections)


@pytest.fixture
def market():
    return FakeMarket()


@pytest.fixture
def arena_config():
    return ArenaConfig(random_seed=7)
