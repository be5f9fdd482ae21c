from .balance import AMOUNT_QUANTUM, Amount, BalanceRecord
from .base import Base
from .share import ShareRecord

__all__ = ["AMOUNT_QUANTUM", "Amount", "Base", "BalanceRecord", "ShareRecord"]
