from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token, get_current_user_id, get_password_hash
from app.db import dynamo
from app.main import app
from app.routers import dashboard
from app.routers import insights as insights_router
from app.utils import email_service
from app.utils.insights import InsightEngine
from tests.factories import make_txn

NOW = datetime(2025, 6, 18, 15, 0, tzinfo=timezone.utc)

client = TestClient(app)


@pytest.fixture
def signed_in():
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    yield "user-1"
    app.dependency_overrides.pop(get_current_user_id, None)


@pytest.fixture
def stored(monkeypatch, store):
    monkeypatch.setattr(dynamo, "find_transactions", store.find_transactions)
    return store


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert "timestamp" in data


def test_protected_route_without_token():
    response = client.get("/api/dashboard/summary")
    assert response.status_code == 401
    assert response.json()["detail"] == "No token, authorization denied"


def test_protected_route_with_real_token(monkeypatch, stored):
    token = create_access_token({"sub": "user-1"})
    response = client.get("/api/transactions/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json() == []


# Auth

def test_register(monkeypatch):
    saved = []
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: None)
    monkeypatch.setattr(dynamo, "put_user", lambda item: saved.append(item) or True)

    response = client.post(
        "/api/auth/register",
        json={"name": "Test User", "email": "Test@Example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    assert response.json()["user"] == {"name": "Test User", "email": "test@example.com"}
    assert saved[0]["email"] == "test@example.com"
    assert saved[0]["password_hash"] != "secret123"


def test_register_rejects_short_password(monkeypatch):
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: None)
    response = client.post(
        "/api/auth/register",
        json={"name": "Test User", "email": "test@example.com", "password": "123"},
    )
    assert response.status_code == 422


def test_register_duplicate_email(monkeypatch):
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: {"user_id": "user-1", "email": email})
    response = client.post(
        "/api/auth/register",
        json={"name": "Test User", "email": "test@example.com", "password": "secret123"},
    )
    assert response.status_code == 400


@pytest.fixture
def existing_user(monkeypatch):
    user = {
        "user_id": "user-1",
        "name": "Test User",
        "email": "test@example.com",
        "password_hash": get_password_hash("secret123"),
    }
    monkeypatch.setattr(dynamo, "get_user_by_email", lambda email: user if email == user["email"] else None)
    return user


def test_login(existing_user):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["user"] == {"id": "user-1", "name": "Test User", "email": "test@example.com"}
    assert data["token"]


def test_login_wrong_password(existing_user):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "nope-nope"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid email or password"


def test_forgot_password_without_email_service(monkeypatch, existing_user):
    updates = []
    monkeypatch.setattr(dynamo, "update_user", lambda user_id, changes: updates.append(changes) or changes)
    monkeypatch.setattr(email_service, "is_configured", lambda: False)

    response = client.post("/api/auth/forgot-password", json={"email": "test@example.com"})
    assert response.status_code == 200
    token = response.json()["resetToken"]
    assert len(token) == 64
    assert updates[0]["password_reset_token"] == token


def test_forgot_password_unknown_email(existing_user):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 404


def test_reset_password(monkeypatch, existing_user):
    existing_user["password_reset_token"] = "abc"
    existing_user["password_reset_expires"] = (datetime.now(timezone.utc) + timedelta(minutes=30)).isoformat()
    cleared = []
    monkeypatch.setattr(dynamo, "clear_password_reset", lambda user_id, password_hash: cleared.append(user_id) or True)

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "test@example.com", "token": "abc", "newPassword": "brand-new"},
    )
    assert response.status_code == 200
    assert cleared == ["user-1"]


def test_reset_password_expired_token(monkeypatch, existing_user):
    existing_user["password_reset_token"] = "abc"
    existing_user["password_reset_expires"] = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    response = client.post(
        "/api/auth/reset-password",
        json={"email": "test@example.com", "token": "abc", "newPassword": "brand-new"},
    )
    assert response.status_code == 400


# Transactions

def test_create_transaction_stamps_server_date(monkeypatch, signed_in):
    saved = []
    monkeypatch.setattr(dynamo, "put_transaction", lambda item: saved.append(item) or True)

    response = client.post(
        "/api/transactions/",
        json={"description": "Lunch", "amount": 12.5, "category": "food", "type": "expense"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["description"] == "Lunch"
    assert saved[0]["user_id"] == "user-1"
    assert saved[0]["date"].endswith("Z")
    assert saved[0]["transaction_id"].startswith(saved[0]["date"])


def test_create_transaction_rejects_negative_amount(signed_in):
    response = client.post(
        "/api/transactions/",
        json={"description": "Lunch", "amount": -1, "category": "food", "type": "expense"},
    )
    assert response.status_code == 422


def test_list_transactions_search(stored, signed_in):
    stored.transactions = [
        make_txn(12.0, "food", description="Pizza night", date=NOW - timedelta(days=2)),
        make_txn(40.0, "transport", description="Train pass", date=NOW - timedelta(days=1)),
        make_txn(8.0, "food", description="Coffee", date=NOW),
    ]
    response = client.get("/api/transactions/", params={"search": "FOOD"})
    assert response.status_code == 200
    assert [item["description"] for item in response.json()] == ["Coffee", "Pizza night"]


def test_update_requires_all_fields(signed_in):
    response = client.put("/api/transactions/some-id", json={"description": "Only this"})
    assert response.status_code == 400


def test_update_rejects_empty_description(monkeypatch, signed_in):
    calls = []
    monkeypatch.setattr(dynamo, "update_transaction", lambda *args: calls.append(args))
    response = client.put(
        "/api/transactions/some-id",
        json={"description": "", "amount": 20, "category": "food", "type": "expense"},
    )
    assert response.status_code == 422
    assert calls == []


def test_update_missing_transaction(monkeypatch, signed_in):
    monkeypatch.setattr(dynamo, "update_transaction", lambda user_id, txn_id, changes: None)
    response = client.put(
        "/api/transactions/some-id",
        json={"description": "Dinner", "amount": 20, "category": "food", "type": "expense"},
    )
    assert response.status_code == 404


def test_delete_transaction(monkeypatch, signed_in):
    monkeypatch.setattr(dynamo, "delete_transaction", lambda user_id, txn_id: True)
    response = client.delete("/api/transactions/some-id")
    assert response.status_code == 200
    assert response.json() == {"message": "Transaction deleted successfully"}


def test_store_failure_is_a_server_error(monkeypatch, signed_in):
    def broken(user_id, period=None, txn_type=None):
        raise dynamo.StoreUnavailable("throttled")

    monkeypatch.setattr(dynamo, "find_transactions", broken)
    response = client.get("/api/dashboard/summary")
    assert response.status_code == 500
    assert response.json() == {"detail": "Transaction store unavailable"}


# Dashboard

def test_dashboard_summary(monkeypatch, stored, signed_in):
    monkeypatch.setattr(dashboard, "current_time", lambda: NOW)
    stored.transactions = [
        make_txn(1000.0, "other", "income", NOW - timedelta(days=3)),
        make_txn(200.0, "food", "expense", NOW - timedelta(days=2)),
        make_txn(50.0, "food", "expense", datetime(2025, 5, 2, tzinfo=timezone.utc)),
    ]
    data = client.get("/api/dashboard/summary").json()
    assert data["totalIncome"] == 1000.0
    assert data["totalExpense"] == 250.0
    assert data["balance"] == 750.0
    assert data["monthlyStats"] == {"income": 1000.0, "expense": 200.0}
    assert data["expenseCategories"] == [{"category": "food", "amount": 250.0}]
    assert len(data["recentTransactions"]) == 3


def test_dashboard_weekly_time_data(monkeypatch, stored, signed_in):
    monkeypatch.setattr(dashboard, "current_time", lambda: NOW)
    stored.transactions = [
        make_txn(30.0, "food", "expense", NOW - timedelta(hours=3)),
        make_txn(500.0, "other", "income", NOW - timedelta(days=2, hours=1)),
    ]
    data = client.get("/api/dashboard/time-data", params={"period": "weekly"}).json()
    assert len(data["labels"]) == 7
    assert data["expenses"][6] == 30.0
    assert data["income"][4] == 500.0
    assert data["summary"] == {"totalIncome": 500.0, "totalExpense": 30.0, "period": "Weekly"}


def test_dashboard_defaults_to_monthly(monkeypatch, stored, signed_in):
    monkeypatch.setattr(dashboard, "current_time", lambda: NOW)
    data = client.get("/api/dashboard/time-data", params={"period": "yearly"}).json()
    assert len(data["labels"]) == 30
    assert data["summary"]["period"] == "Monthly"


# Insights

def test_insights_for_empty_account(monkeypatch, store, signed_in):
    monkeypatch.setattr(insights_router, "insight_engine", InsightEngine(store.find_transactions))
    data = client.get("/api/insights/").json()
    assert data["count"] == 1
    assert data["insights"][0]["message"] == "No transactions found in your account."
    assert "generated_at" in data


def test_category_insights_route(monkeypatch, store, signed_in):
    monkeypatch.setattr(insights_router, "insight_engine", InsightEngine(store.find_transactions))
    data = client.get("/api/insights/categories/food").json()
    assert data == {"insights": [], "category": "food", "count": 0}
