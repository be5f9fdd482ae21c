"""Share history written by the stratum layer, pruned by settlements."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ShareRecord(Base):
    """One accepted share.

    Rows are append-only; the only mutation is deletion of shares older
    than a settlement cutoff.
    """

    __tablename__ = "shares"
    __table_args__ = (
        Index("ix_shares_poolid_created", "poolid", "created"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
        comment="Storage order, breaks ties between equal timestamps",
    )
    poolid: Mapped[str] = mapped_column(String, nullable=False)
    blockheight: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    miner: Mapped[str] = mapped_column(String, nullable=False)
    worker: Mapped[str | None] = mapped_column(String)
    payoutinfo: Mapped[str | None] = mapped_column(
        String,
        comment="Optional routing suffix appended to the miner address",
    )
    stratumdifficulty: Mapped[float] = mapped_column(Float, nullable=False)
    stratumdifficultybase: Mapped[float] = mapped_column(Float, nullable=False)
    networkdifficulty: Mapped[float] = mapped_column(Float, nullable=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


__all__ = ["ShareRecord"]
