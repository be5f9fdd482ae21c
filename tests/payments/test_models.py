"""Tests for payment models and payout address keys."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from poolpay.payments.models import (
    PAYOUT_INFO_SEPARATOR,
    Block,
    Share,
    as_utc,
    payout_address,
    to_decimal,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestPayoutAddress:

    def test_bare_miner(self):
        assert payout_address("addr") == "addr"
        assert payout_address("addr", "") == "addr"
        assert payout_address("addr", None) == "addr"

    def test_with_payout_info(self):
        assert payout_address("addr", "memo") == f"addr{PAYOUT_INFO_SEPARATOR}memo"
        assert payout_address("addr", "memo") == "addr#memo"

    def test_share_address_property(self):
        share = Share(
            pool_id="p", miner="m", payout_info="x",
            stratum_difficulty=1, stratum_difficulty_base=1, network_difficulty=1,
            created=NOW,
        )
        assert share.address == "m#x"


class TestToDecimal:

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_passthrough(self):
        d = Decimal("1.23")
        assert to_decimal(d) is d

    def test_int_and_str(self):
        assert to_decimal(5) == Decimal(5)
        assert to_decimal("2.50") == Decimal("2.5")


class TestModels:

    def test_share_is_frozen(self):
        share = Share(
            pool_id="p", miner="m",
            stratum_difficulty=1, stratum_difficulty_base=1, network_difficulty=1,
            created=NOW,
        )
        with pytest.raises(ValidationError):
            share.miner = "other"

    def test_block_reward_parsed_as_decimal(self):
        block = Block(pool_id="p", block_height=1, reward="3.125", created=NOW)
        assert block.reward == Decimal("3.125")

    def test_block_reward_must_be_positive(self):
        with pytest.raises(ValidationError):
            Block(pool_id="p", block_height=1, reward=Decimal(0), created=NOW)


class TestUtcTimestamps:

    def test_offset_converted_to_utc(self):
        created = datetime(2026, 1, 1, 2, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        block = Block(pool_id="p", block_height=1, reward=1, created=created)
        assert block.created == NOW
        assert block.created.tzinfo is timezone.utc

    def test_naive_taken_as_utc(self):
        share = Share(
            pool_id="p", miner="m",
            stratum_difficulty=1, stratum_difficulty_base=1, network_difficulty=1,
            created=datetime(2026, 1, 1),
        )
        assert share.created == NOW
        assert share.created.tzinfo is timezone.utc

    def test_as_utc_helper(self):
        west = datetime(2025, 12, 31, 19, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert as_utc(west) == NOW
        assert as_utc(west).utcoffset() == timedelta(0)
