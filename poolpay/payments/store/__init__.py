"""Persistence backends for share history and pending balances."""

from .interface import BalanceLedger, PaymentsSession, PaymentsStore, ShareStore
from .memory import InMemoryPaymentsStore
from .sql import SqlPaymentsStore

__all__ = [
    "BalanceLedger",
    "InMemoryPaymentsStore",
    "PaymentsSession",
    "PaymentsStore",
    "ShareStore",
    "SqlPaymentsStore",
]
