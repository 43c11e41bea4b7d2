# PATH: strategy/__init__.py
"""Strategy package for XARB: configuration, detection and the run loop."""

from strategy.config import ArbConfig, load_config
from strategy.detector import OpportunityDetector, QuoteBook

__all__ = [
    "ArbConfig",
    "load_config",
    "OpportunityDetector",
    "QuoteBook",
]
