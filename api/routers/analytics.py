from __future__ import annotations

from datetime import datetime, UTC
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse

from api.auth import get_current_user
from api.models import PaymentQueryRequest
from api.payments import build_payment_report, conversion_rate, daily_revenue, total_revenue
from libs.common.settings import get_settings
from libs.firebase.client import get_firestore_async_client
from libs.firestore.payments import fetch_payments

logger = structlog.get_logger(__name__)
router = APIRouter()

PAYMENT_QUERY_TYPES = ("revenue", "conversion", "trends")


def _failure(status_code: int, *errors: str) -> ORJSONResponse:
    return ORJSONResponse(status_code=status_code, content={"success": False, "errors": list(errors)})


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@router.get("/analytics/payments", dependencies=[Depends(get_current_user)], tags=["Analytics"])
async def get_payment_analytics(
    userId: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    paymentMethod: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = 1,
    limit: Optional[int] = None,
):
    """Get the payment analytics report.

    Fetches the matching payment records (newest first, up to `limit`) and
    summarizes them. The date range applies only when both ends are given.
    `page` is echoed back but only the first page is ever returned.

    Args:
        userId: Owning user filter
        startDate: ISO date or datetime, inclusive
        endDate: ISO date or datetime, inclusive
        paymentMethod: Payment method filter
        status_filter: Payment status filter (query parameter `status`)
        page: Requested page (default: 1)
        limit: Maximum number of records (default from settings)

    Returns:
        `{success: true, data: {payments, summary, breakdown, pagination}}`,
        or `{success: false, errors: [...]}` with HTTP 500 on failure

    Example:
        ```bash
        curl "http://localhost:8000/api/analytics/payments?status=completed&limit=50" \\
          -H "Authorization: Bearer <id-token>"
        ```
    """
    limit = limit or get_settings().analytics_default_limit
    try:
        start, end = _parse_date(startDate), _parse_date(endDate)
    except ValueError:
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid date range")

    try:
        payments = await fetch_payments(
            get_firestore_async_client(),
            user_id=userId,
            start_date=start,
            end_date=end,
            payment_method=paymentMethod,
            status=status_filter,
            limit=limit,
        )
    except Exception as e:
        logger.error("Analytics error", error=str(e), exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch analytics")

    logger.info("Payment analytics computed", payments=len(payments), page=page, limit=limit)
    return {"success": True, "data": build_payment_report(payments, page=page, limit=limit)}


@router.post("/analytics/payments", dependencies=[Depends(get_current_user)], tags=["Analytics"])
async def query_payment_analytics(request: PaymentQueryRequest):
    """Compute one narrow payment statistic from a fresh fetch.

    Types:
        - revenue: `{success, revenue}`, sum of completed payments
        - conversion: `{success, conversionRate}`, percent of completed payments
        - trends: `{success, dailyRevenue}`, completed revenue per day over
          the trailing window

    An unknown type returns HTTP 400 with `{success: false, errors: [...]}`.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/analytics/payments \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"type": "conversion"}'
        ```
    """
    if request.type not in PAYMENT_QUERY_TYPES:
        logger.warning("Invalid analytics type", type=request.type)
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid analytics type")

    try:
        payments = await fetch_payments(get_firestore_async_client(), user_id=request.userId)
    except Exception as e:
        logger.error("Analytics error", error=str(e), type=request.type, exc_info=True)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch analytics")

    if request.type == "revenue":
        return {"success": True, "revenue": total_revenue(payments)}
    if request.type == "conversion":
        return {"success": True, "conversionRate": conversion_rate(payments)}
    return {
        "success": True,
        "dailyRevenue": daily_revenue(payments, window_days=get_settings().trends_window_days),
    }
