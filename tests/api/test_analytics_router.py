from datetime import datetime, UTC

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, AsyncMock

from api.main import app
from api.auth import User, get_current_user
from libs.models.firestore import FirestorePayment

def override_get_current_user():
    return User(uid="test_user", email="admin@example.com")

@pytest.fixture(autouse=True)
def override_current_user():
    app.dependency_overrides[get_current_user] = override_get_current_user
    yield
    app.dependency_overrides.clear()

client = TestClient(app)

ROUTER = 'api.routers.analytics'

PAYMENTS = [
    FirestorePayment(id="a", amount=10, status="completed", payment_method="card",
                     created_at=datetime(2024, 3, 2, tzinfo=UTC)),
    FirestorePayment(id="b", amount=5, status="failed", created_at=datetime(2024, 3, 1, tzinfo=UTC)),
]

@patch(f'{ROUTER}.get_firestore_async_client')
@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
def test_payment_report(mock_fetch, mock_get_client):
    """
    Tests the GET report: summary, breakdowns and echoed pagination.
    """
    # Arrange
    mock_fetch.return_value = PAYMENTS

    # Act
    response = client.get("/api/analytics/payments", params={"status": "completed", "page": 3, "limit": 50})

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["summary"] == {
        "totalAmount": 15.0,
        "totalPayments": 2,
        "successfulPayments": 1,
        "failedPayments": 1,
        "successRate": 50.0,
    }
    assert data["breakdown"]["byMethod"] == {"card": {"count": 1, "total": 10.0}, "unknown": {"count": 1, "total": 5.0}}
    assert list(data["breakdown"]["byDate"]) == ["2024-03-01", "2024-03-02"]
    assert data["pagination"] == {"page": 3, "limit": 50, "total": 2}
    assert mock_fetch.call_args.kwargs["status"] == "completed"
    assert mock_fetch.call_args.kwargs["limit"] == 50

@patch(f'{ROUTER}.get_firestore_async_client')
@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
def test_payment_report_defaults_and_dates(mock_fetch, mock_get_client):
    mock_fetch.return_value = []

    response = client.get(
        "/api/analytics/payments",
        params={"startDate": "2024-03-01", "endDate": "2024-03-31T23:59:59Z"},
    )

    assert response.status_code == 200
    kwargs = mock_fetch.call_args.kwargs
    assert kwargs["limit"] == 20
    assert kwargs["start_date"] == datetime(2024, 3, 1, tzinfo=UTC)
    assert kwargs["end_date"] == datetime(2024, 3, 31, 23, 59, 59, tzinfo=UTC)
    assert response.json()["data"]["pagination"]["page"] == 1

def test_payment_report_bad_date():
    response = client.get("/api/analytics/payments", params={"startDate": "yesterday", "endDate": "today"})

    assert response.status_code == 400
    assert response.json()["success"] is False

@patch(f'{ROUTER}.get_firestore_async_client')
@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
def test_payment_report_failure_envelope(mock_fetch, mock_get_client):
    mock_fetch.side_effect = RuntimeError("Failed to fetch payments: unavailable")

    response = client.get("/api/analytics/payments")

    assert response.status_code == 500
    assert response.json() == {"success": False, "errors": ["Failed to fetch analytics"]}

@patch(f'{ROUTER}.get_firestore_async_client')
@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
def test_typed_queries(mock_fetch, mock_get_client):
    mock_fetch.return_value = PAYMENTS

    revenue = client.post("/api/analytics/payments", json={"type": "revenue", "userId": "u1"})
    conversion = client.post("/api/analytics/payments", json={"type": "conversion"})

    assert revenue.json() == {"success": True, "revenue": 10.0}
    assert conversion.json() == {"success": True, "conversionRate": 50.0}
    assert mock_fetch.await_count == 2
    assert mock_fetch.call_args_list[0].kwargs["user_id"] == "u1"

@patch(f'{ROUTER}.get_firestore_async_client')
@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
@patch(f'{ROUTER}.daily_revenue')
def test_trends_query(mock_daily, mock_fetch, mock_get_client):
    mock_fetch.return_value = PAYMENTS
    mock_daily.return_value = {"2024-03-02": 10.0}

    response = client.post("/api/analytics/payments", json={"type": "trends"})

    assert response.json() == {"success": True, "dailyRevenue": {"2024-03-02": 10.0}}
    assert mock_daily.call_args.kwargs["window_days"] == 30

@patch(f'{ROUTER}.fetch_payments', new_callable=AsyncMock)
def test_unknown_type(mock_fetch):
    response = client.post("/api/analytics/payments", json={"type": "refunds"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "errors": ["Invalid analytics type"]}
    mock_fetch.assert_not_awaited()

def test_analytics_requires_auth():
    app.dependency_overrides = {}

    response = client.get("/api/analytics/payments")

    assert response.status_code == 401
