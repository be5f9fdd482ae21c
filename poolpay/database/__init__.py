"""Database access and schema for the payments subsystem."""

from .manager import DBManager
from .schema import Base, BalanceRecord, ShareRecord

__all__ = ["Base", "BalanceRecord", "DBManager", "ShareRecord"]
