"""Read-only access to payment records written by the payment processor."""

from datetime import datetime
from typing import List

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestorePayment

PAYMENTS = "paymentAnalytics"


async def fetch_payments(
    client: AsyncClient,
    user_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    payment_method: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> List[FirestorePayment]:
    """Fetches payment records matching the given filters.

    The date range is applied only when both ends are given. When `limit` is
    set, records are ordered newest first and truncated; there is no cursor,
    so only the first page is ever reachable.

    Args:
        client: The asynchronous Firestore client.
        user_id: Owning user filter.
        start_date: Inclusive lower bound on createdAt.
        end_date: Inclusive upper bound on createdAt.
        payment_method: Method filter (e.g. "card").
        status: Status filter (e.g. "completed").
        limit: Maximum number of records.

    Returns:
        The matching payments.
    """
    try:
        query = client.collection(PAYMENTS)
        if user_id:
            query = query.where(filter=FieldFilter("userId", "==", user_id))
        if start_date and end_date:
            query = query.where(filter=FieldFilter("createdAt", ">=", start_date))
            query = query.where(filter=FieldFilter("createdAt", "<=", end_date))
        if payment_method:
            query = query.where(filter=FieldFilter("paymentMethod", "==", payment_method))
        if status:
            query = query.where(filter=FieldFilter("status", "==", status))
        if limit:
            query = query.order_by("createdAt", direction="DESCENDING").limit(limit)
        docs = await query.get()
    except Exception as e:
        raise RuntimeError(f"Failed to fetch payments: {str(e)}") from e
    return [FirestorePayment(id=doc.id, **doc.to_dict()) for doc in docs]
