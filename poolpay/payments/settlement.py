"""Block settlement.

Runs a payout scheme for confirmed blocks inside a single store
transaction, so balance credits and share pruning land together or not
at all. Settlements of the same pool are serialized: pruning rewrites
the history a concurrent scan for another block would be reading.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

import bittensor as bt

from poolpay.config.pool import PoolConfig

from .models import Block
from .schemes import PayoutScheme, WindowResult, get_payout_scheme
from .store.interface import PaymentsStore


async def settle_block(
    store: PaymentsStore,
    pool: PoolConfig,
    block: Block,
    scheme: PayoutScheme | None = None,
) -> WindowResult:
    """Credit balances for one block and prune shares it made obsolete.

    Raises whatever the scheme or store raises; the transaction is rolled
    back first, leaving no partial credits or deletions.
    """
    if block.pool_id != pool.id:
        raise ValueError(f"block belongs to pool {block.pool_id!r}, not {pool.id!r}")

    if scheme is None:
        scheme = get_payout_scheme(pool.payment_processing.payout_scheme)

    async with store.transaction() as session:
        await session.lock_pool(pool.id)
        return await scheme.update_balances(session.shares, session.balances, pool, block)


class PaymentProcessor:
    """Settles confirmed blocks, one pool at a time, oldest block first."""

    def __init__(self, store: PaymentsStore, scheme: PayoutScheme | None = None):
        self.store = store
        self.scheme = scheme
        self._locks: dict[str, asyncio.Lock] = {}

    def _pool_lock(self, pool_id: str) -> asyncio.Lock:
        lock = self._locks.get(pool_id)
        if lock is None:
            lock = self._locks[pool_id] = asyncio.Lock()
        return lock

    async def settle_blocks(
        self, pool: PoolConfig, blocks: Iterable[Block],
    ) -> list[WindowResult]:
        """Settle ``blocks`` in ascending creation order.

        Stops at the first failure and re-raises it: later cutoffs are
        only valid once every earlier block has been settled.
        """
        if not pool.payment_processing.enabled:
            bt.logging.debug({"payment_processor": {"pool": pool.id, "status": "disabled"}})
            return []

        ordered = sorted(blocks, key=lambda b: (b.created, b.block_height))
        results: list[WindowResult] = []

        async with self._pool_lock(pool.id):
            for block in ordered:
                try:
                    result = await settle_block(self.store, pool, block, self.scheme)
                except Exception as e:
                    bt.logging.error({
                        "payment_processor": {
                            "pool": pool.id,
                            "block_height": block.block_height,
                            "status": "settlement_aborted",
                            "error": f"{type(e).__name__}: {e}",
                        }
                    })
                    raise

                bt.logging.info({
                    "payment_processor": {
                        "pool": pool.id,
                        "block_height": block.block_height,
                        "status": "settled",
                        "recipients": len(result.payouts),
                        "total": str(result.total),
                    }
                })
                results.append(result)

        return results


__all__ = ["PaymentProcessor", "settle_block"]
