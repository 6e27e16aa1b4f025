from datetime import datetime, UTC

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.firestore.payments import fetch_payments


@pytest.fixture
def payments_query(firestore_client):
    """A chainable query mock: where/order_by/limit return the same query."""
    query = MagicMock()
    query.where.return_value = query
    query.order_by.return_value = query
    query.limit.return_value = query
    query.get = AsyncMock(return_value=[])
    firestore_client.collections["paymentAnalytics"] = query
    return query


def _filters(query):
    return [
        (f.field_path, f.op_string, f.value)
        for f in (call.kwargs["filter"] for call in query.where.call_args_list)
    ]


@pytest.mark.asyncio
async def test_fetch_payments_applies_filters_and_limit(firestore_client, payments_query):
    start = datetime(2024, 1, 1, tzinfo=UTC)
    end = datetime(2024, 1, 31, tzinfo=UTC)

    await fetch_payments(
        firestore_client,
        user_id="u1",
        start_date=start,
        end_date=end,
        payment_method="card",
        status="completed",
        limit=20,
    )

    assert _filters(payments_query) == [
        ("userId", "==", "u1"),
        ("createdAt", ">=", start),
        ("createdAt", "<=", end),
        ("paymentMethod", "==", "card"),
        ("status", "==", "completed"),
    ]
    payments_query.order_by.assert_called_once_with("createdAt", direction="DESCENDING")
    payments_query.limit.assert_called_once_with(20)


@pytest.mark.asyncio
async def test_fetch_payments_ignores_half_open_date_range(firestore_client, payments_query):
    await fetch_payments(firestore_client, start_date=datetime(2024, 1, 1, tzinfo=UTC))

    assert _filters(payments_query) == []
    payments_query.limit.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_payments_builds_models(firestore_client, payments_query, snapshot):
    payments_query.get.return_value = [
        snapshot("pay1", {"amount": 10, "status": "completed", "paymentMethod": "card", "userId": "u1"}),
        snapshot("pay2", {"status": "failed"}),
    ]

    payments = await fetch_payments(firestore_client)

    assert payments[0].id == "pay1"
    assert payments[0].amount == 10
    assert payments[0].payment_method == "card"
    assert payments[1].amount is None


@pytest.mark.asyncio
async def test_fetch_payments_failure_is_runtime_error(firestore_client, payments_query):
    payments_query.get.side_effect = Exception("unavailable")

    with pytest.raises(RuntimeError, match="Failed to fetch payments"):
        await fetch_payments(firestore_client)
