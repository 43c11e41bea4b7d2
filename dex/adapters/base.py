"""
dex/adapters/base.py - Venue capability.

VENUE CONTRACT:
  get_quote()     -> Quote | None   (None = no route or malformed response)
  execute_swap()  -> SwapResult     (never raises; failure is structural)

Quote requests may raise NetworkExhaustedError: running out of retries is
an infrastructure failure, not "no route".
"""

from typing import Optional, Protocol, runtime_checkable

from core.models import Quote, SwapRequest, SwapResult


@runtime_checkable
class Venue(Protocol):
    """A trading venue the detector can quote and the executor can swap on."""

    name: str

    async def get_quote(
        self,
        in_symbol: str,
        out_symbol: str,
        in_amount: int,
    ) -> Optional[Quote]:
        ...

    async def execute_swap(self, request: SwapRequest) -> SwapResult:
        ...
