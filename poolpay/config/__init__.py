"""Configuration models and loaders."""

from .pool import (
    DEFAULT_FACTOR,
    CoinConfig,
    PaymentProcessingConfig,
    PoolConfig,
    PplnsConfig,
    get_pool_config,
    load_pool_configs,
    resolve_factor,
)

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
