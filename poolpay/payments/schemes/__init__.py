"""Payout schemes.

A scheme turns one confirmed block into balance credits. Schemes are
looked up by the name configured in ``paymentProcessing.payoutScheme``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from poolpay.config.pool import PoolConfig
from poolpay.payments.models import Block
from poolpay.payments.store.interface import BalanceLedger, ShareStore

from .pplns import (
    DEFAULT_PAGE_SIZE,
    PayPerLastNShares,
    PayoutOverflowError,
    PplnsWindow,
    WindowResult,
    WindowState,
    compute_window,
)


@runtime_checkable
class PayoutScheme(Protocol):
    """Interface for payout schemes."""

    name: str

    async def update_balances(
        self,
        shares: ShareStore,
        balances: BalanceLedger,
        pool: PoolConfig,
        block: Block,
    ) -> WindowResult:
        """Credit balances for ``block`` and prune obsolete shares."""
        ...


_SCHEMES: dict[str, type] = {
    PayPerLastNShares.name: PayPerLastNShares,
}


def get_payout_scheme(name: str, **kwargs) -> PayoutScheme:
    """Instantiate a scheme by its configured name (case-insensitive)."""
    scheme_cls = _SCHEMES.get(name.strip().lower())
    if scheme_cls is None:
        raise ValueError(
            f"unknown payout scheme: {name!r} (available: {sorted(_SCHEMES)})"
        )
    return scheme_cls(**kwargs)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "PayPerLastNShares",
    "PayoutOverflowError",
    "PayoutScheme",
    "PplnsWindow",
    "WindowResult",
    "WindowState",
    "compute_window",
    "get_payout_scheme",
]
