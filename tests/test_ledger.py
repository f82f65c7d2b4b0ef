import io

from openpyxl import load_workbook

from app.core.errors import StoreError
from app.db.dynamo import LedgerStore


def add_income(client, headers, **overrides):
    body = {"icon": "💰", "source": "Freelance", "amount": 2000, "date": "2025-07-20"}
    body.update(overrides)
    return client.post("/api/income/add", headers=headers, json=body)


def add_expense(client, headers, **overrides):
    body = {"icon": "🛒", "category": "Groceries", "amount": 150.5, "date": "2025-07-21"}
    body.update(overrides)
    return client.post("/api/expense/add", headers=headers, json=body)


def test_ledger_routes_require_token(client):
    assert client.get("/api/income").status_code == 401
    assert client.post("/api/expense/add", json={}).status_code == 401
    assert client.get("/api/expense/download").status_code == 401


def test_add_income(client, auth_headers):
    res = add_income(client, auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["source"] == "Freelance"
    assert body["amount"] == 2000
    assert body["type"] == "income"
    assert body["date"] == "2025-07-20T00:00:00"
    assert "category" not in body


def test_add_income_missing_fields(client, auth_headers):
    res = client.post("/api/income/add", headers=auth_headers, json={"source": ""})
    assert res.status_code == 400
    assert res.json()["message"] == "Missing Required Fields"


def test_add_expense_rejects_negative_amount(client, auth_headers):
    res = add_expense(client, auth_headers, amount=-1)
    assert res.status_code == 400


def test_add_expense_rejects_bad_date(client, auth_headers):
    res = add_expense(client, auth_headers, date="last tuesday")
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid Date"


def test_add_income_store_failure(client, auth_headers, monkeypatch):
    def fail(self, entry):
        raise StoreError("Mock DB error")

    monkeypatch.setattr(LedgerStore, "insert", fail)
    res = add_income(client, auth_headers)
    assert res.status_code == 500
    assert res.json() == {"message": "Server Error", "error": "Mock DB error"}


def test_list_income_single_entry(client, auth_headers):
    add_income(client, auth_headers)
    res = client.get("/api/income", headers=auth_headers)
    assert res.status_code == 200
    entries = res.json()
    assert len(entries) == 1
    assert entries[0]["amount"] == 2000


def test_list_is_sorted_by_date_and_scoped(client, auth_headers, sign_up):
    add_expense(client, auth_headers, date="2025-01-05", category="Rent")
    add_expense(client, auth_headers, date="2025-03-01", category="Food")
    add_expense(client, auth_headers, date="2025-02-10", category="Travel")
    add_income(client, auth_headers)

    other = sign_up(email="jane@example.com", name="Jane")
    add_expense(client, {"Authorization": f"Bearer {other['token']}"}, category="Other")

    res = client.get("/api/expense", headers=auth_headers)
    assert [e["category"] for e in res.json()] == ["Food", "Travel", "Rent"]


def test_delete_entry(client, auth_headers):
    entry_id = add_income(client, auth_headers).json()["id"]
    res = client.delete(f"/api/income/{entry_id}", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Income Deleted Successfully"
    assert body["deletedIncome"]["id"] == entry_id
    assert client.get("/api/income", headers=auth_headers).json() == []


def test_delete_missing_entry(client, auth_headers):
    add_income(client, auth_headers)
    res = client.delete("/api/income/does-not-exist", headers=auth_headers)
    assert res.status_code == 404
    assert res.json()["message"] == "Income Not Found"
    assert len(client.get("/api/income", headers=auth_headers).json()) == 1


def test_delete_does_not_cross_kinds_or_owners(client, auth_headers, sign_up):
    income_id = add_income(client, auth_headers).json()["id"]

    res = client.delete(f"/api/expense/{income_id}", headers=auth_headers)
    assert res.status_code == 404
    assert res.json()["message"] == "Expense Not Found"

    other = sign_up(email="jane@example.com", name="Jane")
    res = client.delete(f"/api/income/{income_id}", headers={"Authorization": f"Bearer {other['token']}"})
    assert res.status_code == 404

    assert len(client.get("/api/income", headers=auth_headers).json()) == 1


def test_download_expense_workbook(client, auth_headers):
    add_expense(client, auth_headers, category="Rent", amount=1000, date="2025-01-05")
    add_expense(client, auth_headers, category="Food", amount=42.5, date="2025-03-01")

    res = client.get("/api/expense/download", headers=auth_headers)
    assert res.status_code == 200
    assert res.headers["content-disposition"] == "attachment; filename=expense-details.xlsx"
    assert res.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    ws = load_workbook(io.BytesIO(res.content))["Expense"]
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == ("Category", "Amount", "Date")
    assert [row[:2] for row in rows[1:]] == [("Food", 42.5), ("Rent", 1000)]
