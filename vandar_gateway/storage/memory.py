"""
In-memory transaction store.

Reference implementation of ``TransactionStore`` for tests, local
development and single-instance deployments. Production deployments swap in
a durable backend behind the same interface.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from vandar_gateway.core.errors import StorageError, TransactionNotFoundError
from vandar_gateway.core.models import Transaction, utcnow


class ReadWriteLock:
    """Readers share the lock; a writer holds it alone."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def writing(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryTransactionStore:
    """
    Dict-backed store keyed by gateway token.

    Copies go in and out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._transactions: Dict[str, Transaction] = {}
        self._lock = ReadWriteLock()

    @staticmethod
    def _check(transaction: Transaction) -> None:
        if transaction is None:
            raise StorageError("transaction cannot be None")
        if not transaction.id:
            raise StorageError("transaction ID cannot be empty")
        if not transaction.token:
            raise StorageError("transaction token cannot be empty")

    async def store(self, transaction: Transaction) -> None:
        self._check(transaction)
        with self._lock.writing():
            self._transactions[transaction.token] = transaction.model_copy(deep=True)

    async def get(self, token: str) -> Transaction:
        if not token:
            raise StorageError("token cannot be empty")
        with self._lock.reading():
            transaction = self._transactions.get(token)
            if transaction is None:
                raise TransactionNotFoundError(token)
            return transaction.model_copy(deep=True)

    async def update(self, transaction: Transaction) -> None:
        """
        Replace a stored transaction, stamping ``updated_at``.

        ``updated_at`` never moves backwards, even if the clock does.
        """
        self._check(transaction)
        with self._lock.writing():
            current = self._transactions.get(transaction.token)
            if current is None:
                raise TransactionNotFoundError(transaction.token)
            transaction.updated_at = max(utcnow(), current.updated_at, transaction.updated_at)
            self._transactions[transaction.token] = transaction.model_copy(deep=True)

    async def list_by_status(self, status: str) -> List[Transaction]:
        with self._lock.reading():
            return [
                t.model_copy(deep=True)
                for t in self._transactions.values()
                if t.status == status
            ]

    def __len__(self) -> int:
        with self._lock.reading():
            return len(self._transactions)
