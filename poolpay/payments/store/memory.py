"""In-memory PaymentsStore implementation.

Holds share history and balances in plain Python containers. Each
transaction snapshots the state and restores it if the block raises, so
a failed settlement leaves no partial credits or deletions behind.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Sequence

from poolpay.payments.models import Share


class InMemoryShareStore:
    """Share history keyed by pool id, kept in insertion order."""

    def __init__(self) -> None:
        self._shares: dict[str, list[Share]] = defaultdict(list)

    def _before(self, pool_id: str, before: datetime) -> list[Share]:
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(
            (s for s in self._shares.get(pool_id, []) if s.created < before),
            key=lambda s: s.created,
        )

    async def page_shares_before(
        self, pool_id: str, before: datetime, page: int, page_size: int,
    ) -> list[Share]:
        """Fetch a page counted from the newest share, ordered ascending."""
        ordered = self._before(pool_id, before)
        end = len(ordered) - page * page_size
        if end <= 0:
            return []
        return ordered[max(0, end - page_size):end]

    async def count_shares_before(self, pool_id: str, cutoff: datetime) -> int:
        return len(self._before(pool_id, cutoff))

    async def delete_shares_before(self, pool_id: str, cutoff: datetime) -> None:
        self._shares[pool_id] = [
            s for s in self._shares.get(pool_id, []) if s.created >= cutoff
        ]

    async def insert(self, shares: Sequence[Share]) -> None:
        for share in shares:
            self._shares[share.pool_id].append(share)

    def snapshot(self) -> dict[str, list[Share]]:
        return {pool_id: list(shares) for pool_id, shares in self._shares.items()}

    def restore(self, state: dict[str, list[Share]]) -> None:
        self._shares = defaultdict(list, state)


class InMemoryBalanceLedger:
    """Pending balances keyed by (pool_id, coin, address)."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str, str], Decimal] = {}

    async def add_amount(
        self, pool_id: str, coin: str, address: str, amount: Decimal,
    ) -> None:
        key = (pool_id, coin, address)
        self._balances[key] = self._balances.get(key, Decimal(0)) + amount

    async def get_balance(self, pool_id: str, coin: str, address: str) -> Decimal:
        return self._balances.get((pool_id, coin, address), Decimal(0))

    def snapshot(self) -> dict[tuple[str, str, str], Decimal]:
        return dict(self._balances)

    def restore(self, state: dict[tuple[str, str, str], Decimal]) -> None:
        self._balances = state


class InMemorySession:
    """Session handed out by InMemoryPaymentsStore.transaction()."""

    def __init__(self, shares: InMemoryShareStore, balances: InMemoryBalanceLedger):
        self.shares = shares
        self.balances = balances

    async def lock_pool(self, pool_id: str) -> None:
        # The store-wide transaction lock already serializes every pool
        return None


class InMemoryPaymentsStore:
    """Transactional in-process store."""

    def __init__(self) -> None:
        self.shares = InMemoryShareStore()
        self.balances = InMemoryBalanceLedger()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemorySession]:
        """Run a session atomically, restoring state if it raises."""
        async with self._lock:
            shares_state = self.shares.snapshot()
            balances_state = self.balances.snapshot()
            try:
                yield InMemorySession(self.shares, self.balances)
            except BaseException:
                self.shares.restore(shares_state)
                self.balances.restore(balances_state)
                raise


__all__ = [
    "InMemoryBalanceLedger",
    "InMemoryPaymentsStore",
    "InMemorySession",
    "InMemoryShareStore",
]
