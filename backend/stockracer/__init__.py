"""StockRacer: a paper-trading arena where rule-based agents compete and get culled."""

__version__ = "0.1.0"
__author__ = "StockRacer Team"

__all__ = ["__version__", "__author__"]
