"""Tests for the in-memory payments store."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from poolpay.payments.models import Share
from poolpay.payments.store.interface import (
    BalanceLedger,
    PaymentsSession,
    PaymentsStore,
    ShareStore,
)
from poolpay.payments.store.memory import InMemoryPaymentsStore

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _make_share(miner: str, seconds: int, pool_id: str = "pool1") -> Share:
    return Share(
        pool_id=pool_id,
        miner=miner,
        stratum_difficulty=1.0,
        stratum_difficulty_base=1.0,
        network_difficulty=1.0,
        created=T0 + timedelta(seconds=seconds),
    )


@pytest.fixture
def store():
    return InMemoryPaymentsStore()


class TestProtocols:

    def test_satisfies_interfaces(self, store):
        assert isinstance(store, PaymentsStore)
        assert isinstance(store.shares, ShareStore)
        assert isinstance(store.balances, BalanceLedger)

    @pytest.mark.asyncio
    async def test_session_satisfies_interface(self, store):
        async with store.transaction() as session:
            assert isinstance(session, PaymentsSession)


class TestSharePaging:

    @pytest.mark.asyncio
    async def test_pages_count_back_from_newest(self, store):
        await store.shares.insert([_make_share("a", i) for i in range(5)])
        before = T0 + timedelta(seconds=100)

        page0 = await store.shares.page_shares_before("pool1", before, 0, 2)
        page1 = await store.shares.page_shares_before("pool1", before, 1, 2)
        page2 = await store.shares.page_shares_before("pool1", before, 2, 2)
        page3 = await store.shares.page_shares_before("pool1", before, 3, 2)

        secs = lambda page: [int((s.created - T0).total_seconds()) for s in page]
        assert secs(page0) == [3, 4]
        assert secs(page1) == [1, 2]
        assert secs(page2) == [0]
        assert page3 == []

    @pytest.mark.asyncio
    async def test_out_of_order_inserts_sorted(self, store):
        await store.shares.insert([_make_share("a", 3), _make_share("a", 1), _make_share("a", 2)])

        page = await store.shares.page_shares_before("pool1", T0 + timedelta(seconds=10), 0, 10)

        assert [s.created for s in page] == sorted(s.created for s in page)

    @pytest.mark.asyncio
    async def test_unknown_pool_empty(self, store):
        assert await store.shares.page_shares_before("nope", T0, 0, 10) == []
        assert await store.shares.count_shares_before("nope", T0) == 0


class TestPruning:

    @pytest.mark.asyncio
    async def test_delete_is_strictly_before(self, store):
        await store.shares.insert([_make_share("a", i) for i in range(5)])
        cutoff = T0 + timedelta(seconds=2)

        assert await store.shares.count_shares_before("pool1", cutoff) == 2
        await store.shares.delete_shares_before("pool1", cutoff)

        remaining = await store.shares.page_shares_before("pool1", T0 + timedelta(days=1), 0, 10)
        assert [s.created for s in remaining][0] == cutoff
        assert len(remaining) == 3

    @pytest.mark.asyncio
    async def test_delete_scoped_to_pool(self, store):
        await store.shares.insert([_make_share("a", 0), _make_share("b", 0, pool_id="pool2")])

        await store.shares.delete_shares_before("pool1", T0 + timedelta(seconds=5))

        assert await store.shares.count_shares_before("pool2", T0 + timedelta(seconds=5)) == 1


class TestTransactions:

    @pytest.mark.asyncio
    async def test_commit_keeps_changes(self, store):
        async with store.transaction() as session:
            await session.balances.add_amount("pool1", "BTC", "a", Decimal("1.5"))
            await session.balances.add_amount("pool1", "BTC", "a", Decimal("2.5"))

        assert await store.balances.get_balance("pool1", "BTC", "a") == Decimal("4.0")

    @pytest.mark.asyncio
    async def test_rollback_restores_state(self, store):
        await store.shares.insert([_make_share("a", i) for i in range(3)])
        await store.balances.add_amount("pool1", "BTC", "a", Decimal("1"))

        with pytest.raises(RuntimeError):
            async with store.transaction() as session:
                await session.balances.add_amount("pool1", "BTC", "a", Decimal("5"))
                await session.shares.delete_shares_before("pool1", T0 + timedelta(days=1))
                raise RuntimeError("boom")

        assert await store.balances.get_balance("pool1", "BTC", "a") == Decimal("1")
        assert await store.shares.count_shares_before("pool1", T0 + timedelta(days=1)) == 3

    @pytest.mark.asyncio
    async def test_balances_keyed_by_coin(self, store):
        await store.balances.add_amount("pool1", "BTC", "a", Decimal("1"))
        await store.balances.add_amount("pool1", "LTC", "a", Decimal("2"))

        assert await store.balances.get_balance("pool1", "BTC", "a") == Decimal("1")
        assert await store.balances.get_balance("pool1", "LTC", "a") == Decimal("2")
        assert await store.balances.get_balance("pool1", "DOGE", "a") == Decimal("0")
