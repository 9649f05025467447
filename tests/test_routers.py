from datetime import date

import pytest
from fastapi.testclient import TestClient

from src.db.core import get_db
from src.main import create_app
from src.services.scheduler import RecurringExpenseScheduler


@pytest.fixture
def client(session_factory):
    scheduler = RecurringExpenseScheduler(session_factory=session_factory, clock=lambda: date(2024, 4, 20))
    app = create_app(scheduler=scheduler, start_scheduler=False)

    def override_get_db():
        database = session_factory()
        try:
            yield database
        finally:
            database.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


def _create_user(client, username="alice"):
    response = client.post("/users/", json={"email": f"{username}@example.com", "username": username})
    assert response.status_code == 201
    return response.json()


def _template_payload(user_id, **overrides):
    payload = {
        "user_id": user_id,
        "amount": "1200.00",
        "category": "Rent",
        "description": "Apartment",
        "expense_date": "2024-01-15",
        "payment_method": "Bank transfer",
        "frequency": "Monthly",
        "is_recurring": True,
    }
    payload.update(overrides)
    return payload


def test_root(client):
    assert client.get("/").json() == "Server is running."


def test_create_recurring_template_sets_bookkeeping(client):
    user = _create_user(client)

    response = client.post("/expenses/", json=_template_payload(user["db_id"]))

    assert response.status_code == 201
    body = response.json()
    assert body["is_recurring"] is True
    assert body["last_occurred"] == "2024-01-15"
    assert body["recurring_start_date"] == "2024-01-15"
    assert body["frequency"] == "Monthly"


def test_manual_run_materializes_occurrences(client):
    user = _create_user(client)
    client.post("/expenses/", json=_template_payload(user["db_id"]))

    response = client.post("/recurring/run")

    assert response.status_code == 200
    summary = response.json()
    assert summary["run_date"] == "2024-04-20"
    assert summary["occurrences_inserted"] == 3

    listed = client.get("/expenses/", params={"user_id": user["db_id"], "is_recurring": False}).json()
    assert [e["expense_date"] for e in listed] == ["2024-04-15", "2024-03-15", "2024-02-15"]
    assert client.get("/recurring/last-run").json()["occurrences_inserted"] == 3


def test_manual_run_accepts_run_date(client):
    user = _create_user(client)
    client.post("/expenses/", json=_template_payload(user["db_id"]))

    summary = client.post("/recurring/run", params={"run_date": "2024-02-20"}).json()

    assert summary["occurrences_inserted"] == 1


def test_expense_for_unknown_user_is_404(client):
    response = client.post("/expenses/", json=_template_payload(999))
    assert response.status_code == 404


def test_recurring_expense_requires_frequency(client):
    user = _create_user(client)
    response = client.post("/expenses/", json=_template_payload(user["db_id"], frequency=None))
    assert response.status_code == 422


def test_unknown_frequency_label_is_rejected(client):
    user = _create_user(client)
    response = client.post("/expenses/", json=_template_payload(user["db_id"], frequency="Fortnightly"))
    assert response.status_code == 422


def test_user_with_expenses_cannot_be_deleted(client):
    user = _create_user(client)
    expense = client.post("/expenses/", json=_template_payload(user["db_id"])).json()

    assert client.delete(f"/users/{user['db_id']}").status_code == 409

    assert client.delete(f"/expenses/{expense['id']}").status_code == 204
    assert client.get(f"/expenses/{expense['id']}").status_code == 404
    assert client.delete(f"/users/{user['db_id']}").status_code == 204
    assert client.get(f"/users/{user['db_id']}").status_code == 404


def test_duplicate_username_is_rejected(client):
    _create_user(client)
    response = client.post("/users/", json={"email": "other@example.com", "username": "alice"})
    assert response.status_code == 400
