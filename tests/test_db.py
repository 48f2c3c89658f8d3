"""Tests for the SQLite order store."""

import pytest


async def _create(store, order_id="ORD-1"):
    await store.create_order(
        order_id=order_id,
        customer_name="Le Van C",
        customer_email="c@example.vn",
        customer_phone="0912345678",
        address="1 Le Loi, Q1",
        amount=120000,
    )


class TestSqliteOrderStore:
    @pytest.mark.asyncio
    async def test_created_order_starts_pending_unpaid(self, sqlite_store):
        await _create(sqlite_store)

        order = await sqlite_store.find_order_by_order_id("ORD-1")

        assert order["status"] == "pending"
        assert order["payment_status"] == "unpaid"
        assert order["amount"] == 120000
        assert order["transaction_id"] is None

    @pytest.mark.asyncio
    async def test_missing_order_is_none(self, sqlite_store):
        assert await sqlite_store.find_order_by_order_id("nope") is None

    @pytest.mark.asyncio
    async def test_patch_sets_fields_and_is_repeatable(self, sqlite_store):
        await _create(sqlite_store)
        fields = {"payment_status": "paid", "status": "processing", "transaction_id": "TX-1", "paid_at": "2026-10-01"}

        await sqlite_store.patch_order("ORD-1", fields)
        await sqlite_store.patch_order("ORD-1", fields)

        order = await sqlite_store.find_order_by_order_id("ORD-1")
        assert order["payment_status"] == "paid"
        assert order["status"] == "processing"
        assert order["transaction_id"] == "TX-1"
        assert order["paid_at"] == "2026-10-01"

    @pytest.mark.asyncio
    async def test_patch_ignores_none_values(self, sqlite_store):
        await _create(sqlite_store)
        await sqlite_store.patch_order("ORD-1", {"transaction_id": "TX-1"})

        await sqlite_store.patch_order("ORD-1", {"payment_status": "failed", "transaction_id": None})

        order = await sqlite_store.find_order_by_order_id("ORD-1")
        assert order["transaction_id"] == "TX-1"
        assert order["payment_status"] == "failed"

    @pytest.mark.asyncio
    async def test_patch_rejects_unknown_columns(self, sqlite_store):
        await _create(sqlite_store)

        with pytest.raises(ValueError):
            await sqlite_store.patch_order("ORD-1", {"amount": 1})

    @pytest.mark.asyncio
    async def test_patch_of_unknown_order_is_noop(self, sqlite_store):
        await sqlite_store.patch_order("ORD-404", {"payment_status": "paid"})
        assert await sqlite_store.find_order_by_order_id("ORD-404") is None

    @pytest.mark.asyncio
    async def test_order_id_is_unique(self, sqlite_store):
        await _create(sqlite_store)
        with pytest.raises(Exception):
            await _create(sqlite_store)


class TestConditionalUpdate:
    @pytest.mark.asyncio
    async def test_writes_while_status_allowed(self, sqlite_store):
        await _create(sqlite_store)

        written = await sqlite_store.apply_payment_update(
            "ORD-1", {"payment_status": "paid", "status": "processing"}, from_payment_statuses={"unpaid"}
        )

        assert written is True
        assert (await sqlite_store.find_order_by_order_id("ORD-1"))["payment_status"] == "paid"

    @pytest.mark.asyncio
    async def test_skips_when_status_moved_on(self, sqlite_store):
        await _create(sqlite_store)
        await sqlite_store.patch_order("ORD-1", {"payment_status": "expired", "status": "cancelled"})

        written = await sqlite_store.apply_payment_update(
            "ORD-1", {"payment_status": "paid", "status": "processing"}, from_payment_statuses={"unpaid"}
        )

        assert written is False
        order = await sqlite_store.find_order_by_order_id("ORD-1")
        assert order["payment_status"] == "expired"
        assert order["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_unguarded_write_reports_row_change(self, sqlite_store):
        await _create(sqlite_store)

        assert await sqlite_store.apply_payment_update("ORD-1", {"payment_status": "failed"}) is True
        assert await sqlite_store.apply_payment_update("ORD-404", {"payment_status": "failed"}) is False
