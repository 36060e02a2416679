"""
Unit tests for the in-memory transaction store.
"""
import asyncio
from datetime import timedelta

import pytest

from vandar_gateway.core.errors import StorageError, TransactionNotFoundError
from vandar_gateway.core.models import STATUS_INIT, STATUS_PAID, Transaction, utcnow
from vandar_gateway.storage import MemoryTransactionStore, TransactionStore


def make_transaction(token: str = "tok_1", **overrides: object) -> Transaction:
    fields = {"id": f"id-{token}", "token": token, "amount": 50_000}
    fields.update(overrides)
    return Transaction(**fields)


class TestMemoryTransactionStore:
    """Test suite for MemoryTransactionStore."""

    @pytest.mark.unit
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryTransactionStore(), TransactionStore)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_store_and_get(self) -> None:
        store = MemoryTransactionStore()
        await store.store(make_transaction(metadata={"order_id": "1"}))

        fetched = await store.get("tok_1")

        assert fetched.id == "id-tok_1"
        assert fetched.status == STATUS_INIT
        assert fetched.metadata == {"order_id": "1"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_copies_in_and_out(self) -> None:
        """Mutating a stored or fetched object does not change the store."""
        store = MemoryTransactionStore()
        original = make_transaction(metadata={"order_id": "1"})
        await store.store(original)

        original.status = STATUS_PAID
        fetched = await store.get("tok_1")
        fetched.metadata["order_id"] = "changed"  # type: ignore[index]

        again = await store.get("tok_1")
        assert again.status == STATUS_INIT
        assert again.metadata == {"order_id": "1"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_missing(self) -> None:
        with pytest.raises(TransactionNotFoundError) as exc_info:
            await MemoryTransactionStore().get("nope")
        assert exc_info.value.token == "nope"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_empty_token(self) -> None:
        with pytest.raises(StorageError):
            await MemoryTransactionStore().get("")

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "transaction",
        [None, make_transaction(id=""), make_transaction(token="")],
    )
    async def test_store_rejects_incomplete(self, transaction: Transaction) -> None:
        with pytest.raises(StorageError):
            await MemoryTransactionStore().store(transaction)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_missing(self) -> None:
        with pytest.raises(TransactionNotFoundError):
            await MemoryTransactionStore().update(make_transaction())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_stamps_updated_at(self) -> None:
        store = MemoryTransactionStore()
        created = make_transaction()
        await store.store(created)

        changed = await store.get("tok_1")
        changed.status = STATUS_PAID
        await store.update(changed)

        updated = await store.get("tok_1")
        assert updated.status == STATUS_PAID
        assert updated.updated_at >= created.updated_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_updated_at_never_goes_backwards(self) -> None:
        """A stale timestamp on the update does not rewind the stored one."""
        store = MemoryTransactionStore()
        future = utcnow() + timedelta(hours=1)
        await store.store(make_transaction(updated_at=future))

        stale = make_transaction(updated_at=utcnow() - timedelta(days=1))
        await store.update(stale)

        assert (await store.get("tok_1")).updated_at == future

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_by_status(self) -> None:
        store = MemoryTransactionStore()
        await store.store(make_transaction("a"))
        await store.store(make_transaction("b", status=STATUS_PAID))
        await store.store(make_transaction("c", status=STATUS_PAID))

        paid = await store.list_by_status(STATUS_PAID)

        assert sorted(t.token for t in paid) == ["b", "c"]
        assert await store.list_by_status("REFUNDED") == []
        assert len(store) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_writes(self) -> None:
        """Concurrent stores and reads all complete and are visible."""
        store = MemoryTransactionStore()

        async def write_then_read(i: int) -> str:
            await store.store(make_transaction(f"tok_{i}"))
            return (await store.get(f"tok_{i}")).token

        tokens = await asyncio.gather(*(write_then_read(i) for i in range(200)))

        assert len(set(tokens)) == 200
        assert len(store) == 200


@pytest.mark.unit
def test_transaction_to_dict_is_json_ready() -> None:
    """Unset optional fields are omitted and timestamps are ISO strings."""
    data = make_transaction().to_dict()

    assert data["token"] == "tok_1"
    assert "completed_at" not in data
    assert "metadata" not in data
    assert isinstance(data["created_at"], str)
