"""
dex/adapters/ - Venue adapters.

Adapters:
- base: Venue protocol
- jupiter: Jupiter v6 routed venue restricted to a DEX label set
- simulated: constant-product paper venue
"""

from dex.adapters.base import Venue
from dex.adapters.jupiter import JupiterVenue, parse_quote_response, venue_name_for
from dex.adapters.simulated import SimulatedPool, SimulatedVenue

__all__ = [
    "Venue",
    "JupiterVenue",
    "parse_quote_response",
    "venue_name_for",
    "SimulatedPool",
    "SimulatedVenue",
]
