"""Share-weighted block reward distribution.

The payments module credits miner balances when the pool finds a block
and prunes share history no future block can reach:
- Schemes: turn one block into per-address rewards (PPLNS)
- Settlement: runs a scheme atomically against a PaymentsStore
- Stores: share history + balance ledger backends (memory, SQL)
"""

from .models import PAYOUT_INFO_SEPARATOR, Block, Share, payout_address, to_decimal
from .schemes import (
    PayPerLastNShares,
    PayoutOverflowError,
    PayoutScheme,
    PplnsWindow,
    WindowResult,
    compute_window,
    get_payout_scheme,
)
from .settlement import PaymentProcessor, settle_block

__all__ = [
    "PAYOUT_INFO_SEPARATOR",
    "Block",
    "PayPerLastNShares",
    "PaymentProcessor",
    "PayoutOverflowError",
    "PayoutScheme",
    "PplnsWindow",
    "Share",
    "WindowResult",
    "compute_window",
    "get_payout_scheme",
    "payout_address",
    "settle_block",
    "to_decimal",
]
