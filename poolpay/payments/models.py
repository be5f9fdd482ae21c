"""Pydantic models for share-weighted block reward distribution.

Shares and blocks are read-only inputs to a settlement: shares are
persisted by the stratum layer, blocks arrive with their reward already
known. Both are frozen once built.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Payout address key
# ---------------------------------------------------------------------------

PAYOUT_INFO_SEPARATOR = "#"


def payout_address(miner: str, payout_info: str | None = None) -> str:
    """Build the balance key for a miner, with optional routing suffix."""
    if payout_info:
        return f"{miner}{PAYOUT_INFO_SEPARATOR}{payout_info}"
    return miner


def to_decimal(value: Any) -> Decimal:
    """Convert a stored numeric value to Decimal via its shortest repr.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1") rather than
    the exact binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def as_utc(value: datetime) -> datetime:
    """Normalize to UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Shares and blocks
# ---------------------------------------------------------------------------


class Share(BaseModel):
    """A proof-of-work share as persisted by the pool."""

    model_config = ConfigDict(frozen=True)

    pool_id: str
    miner: str
    worker: str | None = None
    payout_info: str | None = None
    block_height: int = 0
    stratum_difficulty: float = Field(description="Difficulty the share actually met")
    stratum_difficulty_base: float = Field(description="Difficulty assigned to the miner")
    network_difficulty: float
    created: datetime

    @field_validator("created")
    @classmethod
    def created_to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def address(self) -> str:
        return payout_address(self.miner, self.payout_info)


class Block(BaseModel):
    """A confirmed block whose reward is being distributed."""

    model_config = ConfigDict(frozen=True)

    pool_id: str
    block_height: int
    reward: Decimal = Field(gt=0)
    created: datetime = Field(description="Scan only considers shares strictly before this")
    hash: str | None = None

    @field_validator("created")
    @classmethod
    def created_to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


__all__ = [
    "PAYOUT_INFO_SEPARATOR",
    "Block",
    "Share",
    "as_utc",
    "payout_address",
    "to_decimal",
]
