"""Payments store protocols - pluggable persistence for shares and balances.

Implementations: InMemoryPaymentsStore (tests, local runs),
SqlPaymentsStore (SQLAlchemy async engine).

A settlement runs inside one ``PaymentsStore.transaction()``: every page
read, balance credit and share deletion goes through the yielded session
and commits or rolls back together.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence, runtime_checkable

from poolpay.payments.models import Share


@runtime_checkable
class ShareStore(Protocol):
    """Read/prune access to a pool's share history."""

    async def page_shares_before(
        self, pool_id: str, before: datetime, page: int, page_size: int,
    ) -> list[Share]:
        """Fetch one page of shares with ``created < before``.

        Page 0 holds the newest ``page_size`` shares, page 1 the next
        older chunk. Each page is ordered ascending by creation time.
        An empty list means history is exhausted.
        """
        ...

    async def count_shares_before(self, pool_id: str, cutoff: datetime) -> int:
        """Count shares with ``created < cutoff``."""
        ...

    async def delete_shares_before(self, pool_id: str, cutoff: datetime) -> None:
        """Delete shares with ``created < cutoff``."""
        ...

    async def insert(self, shares: Sequence[Share]) -> None:
        """Append shares to history."""
        ...


@runtime_checkable
class BalanceLedger(Protocol):
    """Pending balance accumulation per pool, coin and payout address."""

    async def add_amount(
        self, pool_id: str, coin: str, address: str, amount: Decimal,
    ) -> None:
        """Add ``amount`` to the address balance, creating it if absent."""
        ...

    async def get_balance(self, pool_id: str, coin: str, address: str) -> Decimal:
        """Current pending balance, zero if the address is unknown."""
        ...


@runtime_checkable
class PaymentsSession(Protocol):
    """Transaction-scoped view over both stores."""

    shares: ShareStore
    balances: BalanceLedger

    async def lock_pool(self, pool_id: str) -> None:
        """Serialize against other settlements of the same pool."""
        ...


@runtime_checkable
class PaymentsStore(Protocol):
    """Factory for atomic payment sessions."""

    def transaction(self) -> AbstractAsyncContextManager[PaymentsSession]:
        """Open a session; commit on clean exit, roll back on exception."""
        ...


__all__ = ["BalanceLedger", "PaymentsSession", "PaymentsStore", "ShareStore"]
