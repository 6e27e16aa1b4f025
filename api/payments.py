"""Payment analytics computed in memory over fetched payment records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Dict, Iterable, List, Optional

from libs.models.firestore import FirestorePayment

COMPLETED = "completed"
FAILED = "failed"
UNKNOWN = "unknown"


@dataclass
class PaymentSummary:
    """Headline numbers for the payment dashboard."""

    total_amount: float
    total_payments: int
    successful_payments: int
    failed_payments: int
    success_rate: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalAmount": self.total_amount,
            "totalPayments": self.total_payments,
            "successfulPayments": self.successful_payments,
            "failedPayments": self.failed_payments,
            "successRate": self.success_rate,
        }


def _amount(payment: FirestorePayment) -> float:
    return payment.amount or 0.0


def _day(payment: FirestorePayment) -> str:
    if payment.created_at is None:
        return UNKNOWN
    created = payment.created_at
    if created.tzinfo is not None:
        created = created.astimezone(UTC)
    return created.date().isoformat()


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total > 0 else 0


def summarize_payments(payments: List[FirestorePayment]) -> PaymentSummary:
    """Totals, counts and success rate (percent, 2 dp) over `payments`."""
    total = len(payments)
    successful = sum(1 for p in payments if p.status == COMPLETED)
    return PaymentSummary(
        total_amount=round(sum(_amount(p) for p in payments), 2),
        total_payments=total,
        successful_payments=successful,
        failed_payments=sum(1 for p in payments if p.status == FAILED),
        success_rate=_rate(successful, total),
    )


def _group(payments: Iterable[FirestorePayment], key) -> Dict[str, Dict[str, float]]:
    groups: Dict[str, Dict[str, float]] = {}
    for payment in payments:
        bucket = groups.setdefault(key(payment), {"count": 0, "total": 0.0})
        bucket["count"] += 1
        bucket["total"] += _amount(payment)
    for bucket in groups.values():
        bucket["total"] = round(bucket["total"], 2)
    return groups


def breakdown_by_method(payments: List[FirestorePayment]) -> Dict[str, Dict[str, float]]:
    """Count and total per payment method; missing methods group as `unknown`."""
    return _group(payments, lambda p: p.payment_method or UNKNOWN)


def breakdown_by_date(payments: List[FirestorePayment]) -> Dict[str, Dict[str, float]]:
    """Count and total per UTC calendar day, ascending by day."""
    groups = _group(payments, _day)
    return {day: groups[day] for day in sorted(groups)}


def build_payment_report(
    payments: List[FirestorePayment], page: int, limit: int
) -> Dict[str, object]:
    """The `data` object of the payment analytics report."""
    return {
        "payments": [p.model_dump(mode="json", by_alias=True) for p in payments],
        "summary": summarize_payments(payments).to_dict(),
        "breakdown": {
            "byMethod": breakdown_by_method(payments),
            "byDate": breakdown_by_date(payments),
        },
        "pagination": {"page": page, "limit": limit, "total": len(payments)},
    }


def total_revenue(payments: Iterable[FirestorePayment]) -> float:
    """Sum of completed payments, rounded to cents."""
    return round(sum(_amount(p) for p in payments if p.status == COMPLETED), 2)


def conversion_rate(payments: List[FirestorePayment]) -> float:
    """Share of completed payments, percent with 2 dp."""
    completed = sum(1 for p in payments if p.status == COMPLETED)
    return _rate(completed, len(payments))


def daily_revenue(
    payments: Iterable[FirestorePayment],
    window_days: int = 30,
    now: Optional[datetime] = None,
) -> Dict[str, float]:
    """Completed revenue per day over the trailing window, ascending by day."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=window_days)

    revenue: Dict[str, float] = {}
    for payment in payments:
        if payment.status != COMPLETED or payment.created_at is None:
            continue
        created = payment.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        if created <= cutoff:
            continue
        day = _day(payment)
        revenue[day] = revenue.get(day, 0.0) + _amount(payment)
    return {day: round(revenue[day], 2) for day in sorted(revenue)}
