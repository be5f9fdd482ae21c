"""PPLNS (Pay Per Last N Shares) payout scheme.

Walks share history backwards from the block's timestamp, scoring each
share by its difficulty ratio normalized by network difficulty. The walk
stops once the accumulated score reaches ``factor_x``; the share that
crosses the threshold only contributes the remaining capacity. Each
share's score converts to ``score * reward / factor_x``, so a full window
pays out exactly the block reward.

Key design:
- History is read in pages newest-first; each page arrives ascending and
  is consumed last-to-first.
- All arithmetic is Decimal with 28 significant digits.
- The oldest share inspected becomes the cutoff: no later block can reach
  further back, so everything before it is pruned after crediting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Context, Decimal, localcontext
from enum import Enum
from typing import Sequence

import bittensor as bt

from poolpay.config.pool import PoolConfig, resolve_factor
from poolpay.payments.models import Block, Share, to_decimal
from poolpay.payments.store.interface import BalanceLedger, ShareStore

DEFAULT_PAGE_SIZE = 10000
DECIMAL_PRECISION = 28

_DECIMAL_CONTEXT = Context(prec=DECIMAL_PRECISION)


class PayoutOverflowError(OverflowError):
    """Remaining block reward hit zero before the window filled.

    Indicates corrupt share difficulties upstream. Settlement must abort.
    """


class WindowState(str, Enum):
    SCANNING = "scanning"
    CLOSED = "closed"


@dataclass
class WindowResult:
    """Output of a window computation."""

    payouts: dict[str, Decimal] = field(default_factory=dict)  # address -> reward
    cutoff: datetime | None = None  # created of the oldest share inspected
    accumulated_score: Decimal = Decimal(0)
    reward_remaining: Decimal = Decimal(0)
    shares_inspected: int = 0
    closed: bool = False

    @property
    def total(self) -> Decimal:
        return sum(self.payouts.values(), Decimal(0))


class PplnsWindow:
    """Scoring state for one block, fed shares newest-first."""

    def __init__(self, factor_x: Decimal, block_reward: Decimal):
        factor_x = to_decimal(factor_x)
        if factor_x <= 0:
            raise ValueError(f"factor_x must be positive, got {factor_x}")

        self.factor_x = factor_x
        self.block_reward = to_decimal(block_reward)
        self.reward_remaining = self.block_reward
        self.accumulated_score = Decimal(0)
        self.cutoff: datetime | None = None
        self.payouts: dict[str, Decimal] = {}
        self.shares_inspected = 0
        self.state = WindowState.SCANNING

    @property
    def closed(self) -> bool:
        return self.state is WindowState.CLOSED

    def add_share(self, share: Share) -> Decimal:
        """Score one share and credit its reward. Returns the reward."""
        if self.closed:
            raise RuntimeError("window already closed")

        self.cutoff = share.created
        self.shares_inspected += 1

        with localcontext(_DECIMAL_CONTEXT):
            network_diff = to_decimal(share.network_difficulty)

            # Keep the score bounded on testnets where network difficulty is tiny
            stratum_diff = min(to_decimal(share.stratum_difficulty), network_diff)
            stratum_diff_base = min(to_decimal(share.stratum_difficulty_base), network_diff)

            diff_ratio = stratum_diff / stratum_diff_base
            score = diff_ratio / network_diff

            if self.accumulated_score + score >= self.factor_x:
                score = self.factor_x - self.accumulated_score
                self.state = WindowState.CLOSED

            reward = score * self.block_reward / self.factor_x
            if self.closed and reward > self.reward_remaining:
                # Last-digit rounding must not pay out more than the block
                reward = self.reward_remaining

            self.accumulated_score += score
            self.reward_remaining -= reward

            if self.reward_remaining <= 0 and not self.closed:
                raise PayoutOverflowError(
                    f"block reward exhausted before window closed: "
                    f"remaining={self.reward_remaining}, "
                    f"accumulated_score={self.accumulated_score}, factor_x={self.factor_x}"
                )

            address = share.address
            self.payouts[address] = self.payouts.get(address, Decimal(0)) + reward

        return reward

    def consume(self, page: Sequence[Share]) -> None:
        """Feed an ascending page newest-first until it runs out or the window closes."""
        shares = reversed(page)
        while self.state is WindowState.SCANNING:
            share = next(shares, None)
            if share is None:
                return
            self.add_share(share)

    def result(self) -> WindowResult:
        return WindowResult(
            payouts=dict(self.payouts),
            cutoff=self.cutoff,
            accumulated_score=self.accumulated_score,
            reward_remaining=self.reward_remaining,
            shares_inspected=self.shares_inspected,
            closed=self.closed,
        )


async def compute_window(
    pool_id: str,
    factor_x: Decimal,
    block: Block,
    shares: ShareStore,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> WindowResult:
    """Score share history for ``block`` and return payouts plus cutoff.

    Pages are fetched one at a time; an empty page ends history. With no
    shares at all the result has no payouts and ``cutoff`` is None.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    window = PplnsWindow(factor_x, block.reward)
    page = 0

    while window.state is WindowState.SCANNING:
        batch = await shares.page_shares_before(pool_id, block.created, page, page_size)
        page += 1
        if not batch:
            break
        window.consume(batch)

    result = window.result()
    bt.logging.debug({
        "pplns_window": {
            "pool": pool_id,
            "block_height": block.block_height,
            "pages": page,
            "shares_inspected": result.shares_inspected,
            "accumulated_score": str(result.accumulated_score),
            "closed": result.closed,
            "cutoff": result.cutoff.isoformat() if result.cutoff else None,
        }
    })
    return result


class PayPerLastNShares:
    """PPLNS payout scheme: credit balances and prune obsolete shares."""

    name = "pplns"

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        self.page_size = page_size

    async def update_balances(
        self,
        shares: ShareStore,
        balances: BalanceLedger,
        pool: PoolConfig,
        block: Block,
    ) -> WindowResult:
        """Distribute ``block.reward`` over the pool's recent shares.

        Must run inside the caller's transaction: balance credits and the
        share deletion are only safe together.
        """
        factor_x = resolve_factor(pool)
        coin = pool.coin.type

        result = await compute_window(
            pool.id, factor_x, block, shares, page_size=self.page_size,
        )

        for address, amount in result.payouts.items():
            bt.logging.info({
                "pplns": {
                    "pool": pool.id,
                    "credit": f"{amount} {coin}",
                    "address": address,
                }
            })
            await balances.add_amount(pool.id, coin, address, amount)

        if result.cutoff is not None:
            cutoff_count = await shares.count_shares_before(pool.id, result.cutoff)
            if cutoff_count > 0:
                bt.logging.info({
                    "pplns": {
                        "pool": pool.id,
                        "deleting_obsolete_shares": cutoff_count,
                        "before": result.cutoff.isoformat(),
                    }
                })
                await shares.delete_shares_before(pool.id, result.cutoff)

        return result


__all__ = [
    "DECIMAL_PRECISION",
    "DEFAULT_PAGE_SIZE",
    "PayPerLastNShares",
    "PayoutOverflowError",
    "PplnsWindow",
    "WindowResult",
    "WindowState",
    "compute_window",
]
