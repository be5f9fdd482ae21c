"""Pool configuration models.

Mirrors the pool JSON document: each pool names its coin and how mined
blocks are paid out. The payout scheme block is an opaque blob at this
level; each scheme parses the part it understands.

Example:

    {
      "id": "btc1",
      "coin": {"type": "BTC"},
      "paymentProcessing": {
        "enabled": true,
        "payoutScheme": "PPLNS",
        "payoutSchemeConfig": {"factor": 2.0}
      }
    }
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import bittensor as bt
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

DEFAULT_FACTOR = Decimal("2.0")


class _PoolModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoinConfig(_PoolModel):
    type: str = Field(min_length=1, description="Coin/asset ticker balances are kept in")


class PaymentProcessingConfig(_PoolModel):
    enabled: bool = True
    payout_scheme: str = "PPLNS"
    payout_scheme_config: dict[str, Any] | None = None


class PoolConfig(_PoolModel):
    id: str = Field(min_length=1)
    enabled: bool = True
    coin: CoinConfig
    payment_processing: PaymentProcessingConfig = Field(default_factory=PaymentProcessingConfig)


class PplnsConfig(BaseModel):
    """PPLNS section of ``payoutSchemeConfig``."""

    model_config = ConfigDict(extra="ignore")

    factor: Decimal | None = Field(
        default=None,
        description="Window size as a multiple of the block's normalized difficulty",
    )

    @classmethod
    def from_blob(cls, blob: dict[str, Any] | None) -> "PplnsConfig":
        if not blob:
            return cls()
        # Accept "Factor" as well as "factor"
        lowered = {str(k).lower(): v for k, v in blob.items()}
        return cls.model_validate(lowered)


def resolve_factor(pool: PoolConfig) -> Decimal:
    """PPLNS window factor for a pool, DEFAULT_FACTOR when unset or invalid.

    Never raises: a broken scheme config must not block settlement.
    """
    blob = pool.payment_processing.payout_scheme_config
    try:
        factor = PplnsConfig.from_blob(blob).factor
    except (ValidationError, AttributeError, TypeError) as e:
        bt.logging.warning({
            "pplns_config": {
                "pool": pool.id,
                "status": "invalid_factor, using default",
                "default": str(DEFAULT_FACTOR),
                "error": str(e),
            }
        })
        return DEFAULT_FACTOR

    if factor is None:
        return DEFAULT_FACTOR
    if not factor.is_finite() or factor <= 0:
        bt.logging.warning({
            "pplns_config": {
                "pool": pool.id,
                "status": "non_positive_factor, using default",
                "factor": str(factor),
            }
        })
        return DEFAULT_FACTOR
    return factor


_POOL_LIST = TypeAdapter(list[PoolConfig])


def load_pool_configs(path: str | Path) -> list[PoolConfig]:
    """Load pool definitions from a JSON file.

    Accepts either a list of pools or an object with a ``pools`` key.
    """
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("pools", [])
    return _POOL_LIST.validate_python(data)


def get_pool_config(pools: list[PoolConfig], pool_id: str) -> PoolConfig:
    for pool in pools:
        if pool.id == pool_id:
            return pool
    raise KeyError(f"unknown pool: {pool_id}")


__all__ = [
    "DEFAULT_FACTOR",
    "CoinConfig",
    "PaymentProcessingConfig",
    "PoolConfig",
    "PplnsConfig",
    "get_pool_config",
    "load_pool_configs",
    "resolve_factor",
]
