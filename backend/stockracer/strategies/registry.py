from __future__ import annotations

from .base import Strategy
from .growth import GrowthStrategy
from .hodl import HodlStrategy
from .kinds import StrategyKind
from .meme import MemeStrategy
from .momentum import MomentumStrategy
from .scalp import ScalpStrategy
from .technical import TechnicalStrategy
from .value import ValueStrategy

STRATEGY_CLASSES: dict[StrategyKind, type[Strategy]] = {
    StrategyKind.VALUE: ValueStrategy,
    StrategyKind.MEME: MemeStrategy,
    StrategyKind.GROWTH: GrowthStrategy,
    StrategyKind.MOMENTUM: MomentumStrategy,
    StrategyKind.HODL: HodlStrategy,
    StrategyKind.SCALP: ScalpStrategy,
    StrategyKind.TECHNICAL: TechnicalStrategy,
}

_instances: dict[StrategyKind, Strategy] = {}


def get_strategy(kind: StrategyKind | str) -> Strategy:
    """Resolve a strategy kind to its (stateless, shared) implementation."""
    kind = StrategyKind(kind)
    if kind not in _instances:
        _instances[kind] = STRATEGY_CLASSES[kind]()
    return _instances[kind]
