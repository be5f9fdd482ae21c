"""Pending miner balances, credited once per settled block."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, TypeEngine

from .base import Base

AMOUNT_PRECISION = 28
AMOUNT_SCALE = 12
# Smallest amount the ledger can hold (1e-12)
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)


class Amount(TypeDecorator):
    """NUMERIC(28, 12), kept as decimal text on SQLite.

    SQLite has no exact decimal storage class and would round amounts
    through REAL, so there the value is stored as its plain-notation string.
    """

    impl = Numeric(AMOUNT_PRECISION, AMOUNT_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None or dialect.name != "sqlite":
            return value
        return format(Decimal(value), "f")

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None or isinstance(value, Decimal):
            return value
        return Decimal(str(value))


class BalanceRecord(Base):
    __tablename__ = "balances"

    poolid: Mapped[str] = mapped_column(String, primary_key=True)
    cointype: Mapped[str] = mapped_column(String, primary_key=True)
    address: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        comment="Payout address key (miner, optionally #payoutinfo)",
    )
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=0)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


__all__ = [
    "AMOUNT_PRECISION",
    "AMOUNT_QUANTUM",
    "AMOUNT_SCALE",
    "Amount",
    "BalanceRecord",
]
