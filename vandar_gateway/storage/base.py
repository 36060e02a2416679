"""Interface for transaction persistence."""
from typing import List, Protocol, runtime_checkable

from vandar_gateway.core.models import Transaction


@runtime_checkable
class TransactionStore(Protocol):
    """
    Keyed persistence for transactions, looked up by gateway token.

    Implementations raise ``TransactionNotFoundError`` for unknown tokens and
    ``StorageError`` for anything else that prevents the operation.
    """

    async def store(self, transaction: Transaction) -> None:
        """Save a new transaction."""
        ...

    async def get(self, token: str) -> Transaction:
        """Fetch a transaction by gateway token."""
        ...

    async def update(self, transaction: Transaction) -> None:
        """Replace an existing transaction."""
        ...

    async def list_by_status(self, status: str) -> List[Transaction]:
        """All transactions currently in ``status``."""
        ...
