from enum import StrEnum


class StrategyKind(StrEnum):
    VALUE = "value"
    MEME = "meme"
    GROWTH = "growth"
    MOMENTUM = "momentum"
    HODL = "hodl"
    SCALP = "scalp"
    TECHNICAL = "technical"
