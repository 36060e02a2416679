"""Transaction storage interface and reference implementation."""
from .base import TransactionStore
from .memory import MemoryTransactionStore

__all__ = ["MemoryTransactionStore", "TransactionStore"]
