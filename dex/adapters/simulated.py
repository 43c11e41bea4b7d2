"""
dex/adapters/simulated.py - Constant-product (x*y=k) venue for paper runs.

Pools are keyed by an unordered symbol pair. Successful swaps move the
reserves, so repeated trades see price impact the way a real pool would.
"""

import itertools
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from core.logging import get_logger
from core.math import constant_product_out_amount
from core.models import Quote, SwapRequest, SwapResult
from discovery.registry import TokenRegistry, normalize_symbol

logger = get_logger(__name__)


@dataclass
class SimulatedPool:
    """One x*y=k pool. Reserves are in smallest units."""
    symbol_a: str
    symbol_b: str
    reserve_a: int
    reserve_b: int
    fee_bps: int = 30

    def __post_init__(self):
        self.symbol_a = normalize_symbol(self.symbol_a)
        self.symbol_b = normalize_symbol(self.symbol_b)
        if self.reserve_a <= 0 or self.reserve_b <= 0:
            raise ValueError("Pool reserves must be positive")

    @property
    def key(self) -> FrozenSet[str]:
        return frozenset((self.symbol_a, self.symbol_b))

    @property
    def pool_id(self) -> str:
        return f"{self.symbol_a}-{self.symbol_b}"

    def reserves(self, in_symbol: str) -> tuple[int, int]:
        """(reserve_in, reserve_out) for a swap starting from in_symbol."""
        if in_symbol == self.symbol_a:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def out_amount(self, in_symbol: str, in_amount: int) -> int:
        reserve_in, reserve_out = self.reserves(in_symbol)
        return constant_product_out_amount(in_amount, reserve_in, reserve_out, self.fee_bps)

    def apply(self, in_symbol: str, in_amount: int, out_amount: int) -> None:
        if in_symbol == self.symbol_a:
            self.reserve_a += in_amount
            self.reserve_b -= out_amount
        else:
            self.reserve_b += in_amount
            self.reserve_a -= out_amount


class SimulatedVenue:
    """
    Paper venue over constant-product pools.

    Usage:
        venue = SimulatedVenue("paper-a", registry, [SimulatedPool("SOL", "USDC", 10**12, 150 * 10**9)])
    """

    def __init__(
        self,
        name: str,
        registry: TokenRegistry,
        pools: Iterable[SimulatedPool],
        fail_swaps: bool = False,
    ):
        self.name = name
        self.registry = registry
        self.pools: Dict[FrozenSet[str], SimulatedPool] = {p.key: p for p in pools}
        self.fail_swaps = fail_swaps
        self._tx_counter = itertools.count(1)

    def _pool(self, in_symbol: str, out_symbol: str) -> Optional[SimulatedPool]:
        return self.pools.get(frozenset((normalize_symbol(in_symbol), normalize_symbol(out_symbol))))

    async def get_quote(
        self,
        in_symbol: str,
        out_symbol: str,
        in_amount: int,
    ) -> Optional[Quote]:
        token_in = self.registry.lookup(in_symbol)
        token_out = self.registry.lookup(out_symbol)
        pool = self._pool(in_symbol, out_symbol)
        if token_in is None or token_out is None or pool is None:
            return None

        out_amount = pool.out_amount(token_in.symbol, in_amount)
        if out_amount <= 0:
            return None
        return Quote.from_amounts(token_in, token_out, in_amount, out_amount, self.name, pool.pool_id)

    async def execute_swap(self, request: SwapRequest) -> SwapResult:
        pool = self._pool(request.in_symbol, request.out_symbol)
        if pool is None:
            return SwapResult(success=False, description=f"No pool for {request.in_symbol}/{request.out_symbol}")
        if self.fail_swaps:
            return SwapResult(success=False, description="Simulated swap failure")

        in_symbol = normalize_symbol(request.in_symbol)
        out_amount = pool.out_amount(in_symbol, request.in_amount)
        if out_amount < request.min_out_amount:
            return SwapResult(
                success=False,
                description=f"Simulated output {out_amount} < required {request.min_out_amount}",
            )

        pool.apply(in_symbol, request.in_amount, out_amount)
        tx_id = f"sim-{self.name}-{next(self._tx_counter)}"
        logger.debug(
            f"[{self.name}] Simulated swap {request.in_symbol}->{request.out_symbol} out={out_amount}",
            extra={"context": {"venue": self.name, "tx_id": tx_id, "out_amount": out_amount}},
        )
        return SwapResult(
            success=True,
            description="Simulated swap",
            tx_id=tx_id,
            out_amount=out_amount,
            metadata={"pool_id": pool.pool_id},
        )
