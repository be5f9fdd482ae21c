"""SQLAlchemy-backed PaymentsStore implementation.

Every session is bound to one connection inside ``BEGIN``; page reads,
balance upserts and share deletions for a settlement share that
transaction. On PostgreSQL the session also takes a transaction-scoped
advisory lock per pool so concurrent settlers of the same pool queue up
instead of interleaving.

Timestamps are bound and read back as UTC: SQLite keeps only the wall
clock, so any other offset would shift the time window.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from typing import Any, AsyncIterator, Sequence

from sqlalchemy import delete, func, insert, select, text, update
from sqlalchemy.ext.asyncio import AsyncConnection

from poolpay.database.manager import DBManager
from poolpay.database.schema import AMOUNT_QUANTUM, BalanceRecord, ShareRecord
from poolpay.payments.models import Share, as_utc, to_decimal

_shares = ShareRecord.__table__
_balances = BalanceRecord.__table__

_LOCK_POOL = text("SELECT pg_advisory_xact_lock(hashtext(:pool_id))")


def _row_to_share(row: Any) -> Share:
    return Share(
        pool_id=row["poolid"],
        miner=row["miner"],
        worker=row["worker"],
        payout_info=row["payoutinfo"],
        block_height=row["blockheight"],
        stratum_difficulty=row["stratumdifficulty"],
        stratum_difficulty_base=row["stratumdifficultybase"],
        network_difficulty=row["networkdifficulty"],
        created=as_utc(row["created"]),
    )


def _share_to_row(share: Share) -> dict[str, Any]:
    return {
        "poolid": share.pool_id,
        "blockheight": share.block_height,
        "miner": share.miner,
        "worker": share.worker,
        "payoutinfo": share.payout_info,
        "stratumdifficulty": share.stratum_difficulty,
        "stratumdifficultybase": share.stratum_difficulty_base,
        "networkdifficulty": share.network_difficulty,
        "created": as_utc(share.created),
    }


class SqlShareStore:
    """Share history on the ``shares`` table."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    async def page_shares_before(
        self, pool_id: str, before: datetime, page: int, page_size: int,
    ) -> list[Share]:
        """Fetch a page counted from the newest share, ordered ascending."""
        newest_first = (
            select(_shares)
            .where(_shares.c.poolid == pool_id, _shares.c.created < as_utc(before))
            .order_by(_shares.c.created.desc(), _shares.c.id.desc())
            .offset(page * page_size)
            .limit(page_size)
            .subquery()
        )
        query = select(newest_first).order_by(newest_first.c.created, newest_first.c.id)
        result = await self.conn.execute(query)
        return [_row_to_share(row) for row in result.mappings().all()]

    async def count_shares_before(self, pool_id: str, cutoff: datetime) -> int:
        query = (
            select(func.count())
            .select_from(_shares)
            .where(_shares.c.poolid == pool_id, _shares.c.created < as_utc(cutoff))
        )
        result = await self.conn.execute(query)
        return int(result.scalar_one())

    async def delete_shares_before(self, pool_id: str, cutoff: datetime) -> None:
        await self.conn.execute(
            delete(_shares).where(
                _shares.c.poolid == pool_id, _shares.c.created < as_utc(cutoff),
            )
        )

    async def insert(self, shares: Sequence[Share]) -> None:
        if not shares:
            return
        await self.conn.execute(insert(_shares), [_share_to_row(s) for s in shares])


class SqlBalanceLedger:
    """Pending balances on the ``balances`` table.

    Credits are truncated to the column scale (1e-12) before they are
    stored, so the ledger never holds more than was actually distributed.
    """

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    def _key(self, pool_id: str, coin: str, address: str) -> tuple[Any, ...]:
        return (
            _balances.c.poolid == pool_id,
            _balances.c.cointype == coin,
            _balances.c.address == address,
        )

    async def add_amount(
        self, pool_id: str, coin: str, address: str, amount: Decimal,
    ) -> None:
        amount = to_decimal(amount).quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)
        now = datetime.now(timezone.utc)
        values = {
            "poolid": pool_id,
            "cointype": coin,
            "address": address,
            "amount": amount,
            "created": now,
            "updated": now,
        }

        if self.conn.dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            stmt = pg_insert(_balances).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[_balances.c.poolid, _balances.c.cointype, _balances.c.address],
                set_={
                    "amount": _balances.c.amount + stmt.excluded.amount,
                    "updated": stmt.excluded.updated,
                },
            )
            await self.conn.execute(stmt)
            return

        # SQLite keeps amounts as text; add in Decimal
        current = await self._amount(pool_id, coin, address)
        if current is None:
            await self.conn.execute(insert(_balances).values(**values))
            return
        await self.conn.execute(
            update(_balances)
            .where(*self._key(pool_id, coin, address))
            .values(amount=current + amount, updated=now)
        )

    async def _amount(self, pool_id: str, coin: str, address: str) -> Decimal | None:
        result = await self.conn.execute(
            select(_balances.c.amount).where(*self._key(pool_id, coin, address))
        )
        amount = result.scalar_one_or_none()
        return to_decimal(amount) if amount is not None else None

    async def get_balance(self, pool_id: str, coin: str, address: str) -> Decimal:
        amount = await self._amount(pool_id, coin, address)
        return amount if amount is not None else Decimal(0)


class SqlSession:
    """Session handed out by SqlPaymentsStore.transaction()."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn
        self.shares = SqlShareStore(conn)
        self.balances = SqlBalanceLedger(conn)

    async def lock_pool(self, pool_id: str) -> None:
        """Take a pool-scoped advisory lock held until the transaction ends."""
        if self.conn.dialect.name == "postgresql":
            await self.conn.execute(_LOCK_POOL, {"pool_id": pool_id})


class SqlPaymentsStore:
    """PaymentsStore over a DBManager."""

    def __init__(self, db: DBManager):
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlSession]:
        async with self.db.transaction() as conn:
            yield SqlSession(conn)


__all__ = [
    "SqlBalanceLedger",
    "SqlPaymentsStore",
    "SqlSession",
    "SqlShareStore",
]
