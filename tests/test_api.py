from decimal import Decimal

import pytest


@pytest.fixture
def accounts(client, user):
    bank = client.post("/accounts/", json={
        "account_name": "Main Bank", "account_type": "BANK", "bank_name": "FNB", "opening_balance": "5000.00"
    })
    cash = client.post("/accounts/", json={
        "account_name": "Cash Box", "account_type": "CASH", "opening_balance": "200.00"
    })
    assert bank.status_code == 201
    assert cash.status_code == 201
    return bank.json(), cash.json()


def _transaction(reference, **fields):
    payload = {
        "transaction_date": "2024-03-15",
        "transaction_type": "EXPENSE",
        "category": "General",
        "amount": "10.00",
        "reference": reference,
    }
    payload.update(fields)
    return payload


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == "Server is running."


def test_create_and_read_user(client):
    response = client.post("/users/", json={"email": "Lender@Example.com", "username": "lender"})
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "lender@example.com"

    assert client.get(f"/users/{body['db_id']}").json()["username"] == "lender"
    assert client.get("/users/999").status_code == 404

    duplicate = client.post("/users/", json={"email": "lender@example.com", "username": "someone"})
    assert duplicate.status_code == 400


def test_account_balance_is_not_editable(client, accounts):
    bank, _ = accounts

    response = client.put(f"/accounts/{bank['id']}", json={"account_name": "Savings", "current_balance": "1.00"})

    assert response.status_code == 200
    assert response.json()["account_name"] == "Savings"
    assert Decimal(response.json()["current_balance"]) == Decimal("5000.00")


def test_account_stats(client, accounts):
    stats = client.get("/accounts/stats").json()

    assert stats["total_accounts"] == 2
    assert stats["active_accounts"] == 2
    assert Decimal(stats["total_balance"]) == Decimal("5200.00")
    assert stats["accounts_by_type"] == {"BANK": 1, "CASH": 1}


def test_loan_round_trip(client, accounts):
    bank, cash = accounts

    disbursement = client.post("/transactions/", json=_transaction(
        "LOAN-1", transaction_type="LOAN_DISBURSEMENT", category="Loan", amount="1000.00",
        description="Naledi Khumalo", from_account_id=bank["id"], is_loan_disbursement=True
    ))
    assert disbursement.status_code == 201
    body = disbursement.json()
    assert body["is_loan_disbursement"] is True
    assert body["loan_action"] == "DISBURSEMENT"
    assert Decimal(body["balance_after_transaction"]) == Decimal("4000.00")
    loan_id = body["loan_id"]

    loan = client.get(f"/loans/{loan_id}").json()
    assert Decimal(loan["remaining_balance"]) == Decimal("1300.00")
    assert loan["status"] == "ACTIVE"

    payment = client.post("/transactions/", json=_transaction(
        "PAY-1", transaction_type="LOAN_PAYMENT", category="Loan Repayment", amount="500.00",
        to_account_id=cash["id"], loan_id=loan_id, loan_action="PAYMENT"
    ))
    assert payment.status_code == 201

    loan = client.get(f"/loans/{loan_id}").json()
    assert Decimal(loan["remaining_balance"]) == Decimal("800.00")
    assert Decimal(loan["total_paid"]) == Decimal("500.00")

    history = client.get(f"/loans/{loan_id}/transactions").json()
    assert [t["reference"] for t in history] == ["LOAN-1", "PAY-1"]

    metrics = client.get("/loans/metrics").json()
    assert Decimal(metrics["total_loaned"]) == Decimal("1000.00")
    assert Decimal(metrics["total_collected"]) == Decimal("500.00")
    assert Decimal(metrics["total_remaining_balance"]) == Decimal("800.00")
    assert metrics["active_loans"] == 1

    assert len(client.get("/loans/", params={"status": "ACTIVE"}).json()) == 1
    assert client.get("/loans/", params={"status": "PAID"}).json() == []


def test_loan_can_be_written_off(client, accounts):
    bank, _ = accounts
    loan_id = client.post("/transactions/", json=_transaction(
        "LOAN-1", transaction_type="LOAN_DISBURSEMENT", amount="100.00",
        description="Borrower", from_account_id=bank["id"], loan_action="DISBURSEMENT"
    )).json()["loan_id"]

    response = client.put(f"/loans/{loan_id}/status", json={"status": "DEFAULTED"})
    assert response.status_code == 200
    assert response.json()["status"] == "DEFAULTED"

    # Cannot close a loan that still has a balance outstanding
    assert client.put(f"/loans/{loan_id}/status", json={"status": "PAID"}).status_code == 400
    assert client.put("/loans/999/status", json={"status": "DEFAULTED"}).status_code == 404


@pytest.mark.parametrize("payload_fields, expected_status", [
    ({"amount": "300.00", "from_account_id": "cash"}, 400),
    ({"from_account_id": 999}, 404),
    ({"transaction_type": "LOAN_PAYMENT", "to_account_id": "cash", "loan_id": 42, "loan_action": "PAYMENT"}, 404),
    ({"transaction_type": "LOAN_DISBURSEMENT", "to_account_id": "cash", "description": "B", "loan_action": "DISBURSEMENT"}, 400),
    ({"is_loan_disbursement": True, "is_loan_payment": True}, 422),
    ({"transaction_type": "LOAN_DISBURSEMENT", "from_account_id": "cash", "description": "B", "loan_action": "PLAIN"}, 422),
    ({"transaction_type": "LOAN_PAYMENT", "to_account_id": "cash"}, 404),
])
def test_rejected_transactions(client, accounts, payload_fields, expected_status):
    _, cash = accounts
    fields = {k: (cash["id"] if v == "cash" else v) for k, v in payload_fields.items()}

    response = client.post("/transactions/", json=_transaction("BAD-1", **fields))

    assert response.status_code == expected_status
    assert Decimal(client.get(f"/accounts/{cash['id']}").json()["current_balance"]) == Decimal("200.00")
    assert client.get("/transactions/").json() == []


def test_duplicate_reference_conflict(client, accounts):
    _, cash = accounts

    assert client.post("/transactions/", json=_transaction("R-1", from_account_id=cash["id"])).status_code == 201
    response = client.post("/transactions/", json=_transaction("R-1", from_account_id=cash["id"]))

    assert response.status_code == 409


def test_deactivated_account_rejects_transactions(client, accounts):
    bank, cash = accounts

    deleted = client.delete(f"/accounts/{cash['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["account_status"] == "INACTIVE"
    assert client.delete(f"/accounts/{cash['id']}").status_code == 409

    response = client.post("/transactions/", json=_transaction(
        "T-1", from_account_id=bank["id"], to_account_id=cash["id"]
    ))
    assert response.status_code == 400

    assert [a["id"] for a in client.get("/accounts/").json()] == [bank["id"]]
    assert len(client.get("/accounts/", params={"include_inactive": True}).json()) == 2


def test_transaction_filters(client, accounts):
    bank, cash = accounts
    client.post("/transactions/", json=_transaction("A", from_account_id=bank["id"], transaction_date="2024-01-10"))
    client.post("/transactions/", json=_transaction("B", from_account_id=cash["id"], transaction_date="2024-02-10"))
    client.post("/transactions/", json=_transaction(
        "C", transaction_type="INCOME", to_account_id=cash["id"], transaction_date="2024-03-10"
    ))

    by_account = client.get("/transactions/", params={"account_id": cash["id"]}).json()
    assert [t["reference"] for t in by_account] == ["C", "B"]

    by_type = client.get("/transactions/", params={"transaction_type": "INCOME"}).json()
    assert [t["reference"] for t in by_type] == ["C"]

    by_date = client.get("/transactions/", params={"date_from": "2024-02-01", "date_to": "2024-02-28"}).json()
    assert [t["reference"] for t in by_date] == ["B"]

    by_amount = client.get("/transactions/", params={"order_by": "amount", "order_desc": False}).json()
    assert [t["reference"] for t in by_amount] == ["A", "B", "C"]

    first = by_account[-1]
    assert client.get(f"/transactions/{first['db_id']}").json()["reference"] == "B"
    assert client.get("/transactions/999").status_code == 404


@pytest.mark.parametrize("order_by", ["is_loan_payment", "loan", "from_account", "no_such_column"])
def test_transactions_cannot_be_ordered_by_non_columns(client, accounts, order_by):
    _, cash = accounts
    client.post("/transactions/", json=_transaction("A", from_account_id=cash["id"]))

    response = client.get("/transactions/", params={"order_by": order_by})

    assert response.status_code == 400
    assert order_by in response.json()["detail"]


def test_reports_and_dashboard(client, accounts):
    bank, cash = accounts
    client.post("/transactions/", json=_transaction("I", transaction_type="INCOME", amount="100.00", to_account_id=cash["id"]))
    client.post("/transactions/", json=_transaction("E", amount="40.00", from_account_id=cash["id"]))
    client.post("/transactions/", json=_transaction(
        "L", transaction_type="LOAN_DISBURSEMENT", amount="1000.00",
        description="Borrower", from_account_id=bank["id"], loan_action="DISBURSEMENT"
    ))

    monthly = client.get("/reports/monthly", params={"year": 2024}).json()
    assert len(monthly) == 1
    assert (monthly[0]["year"], monthly[0]["month"]) == (2024, 3)
    assert Decimal(monthly[0]["total_income"]) == Decimal("100.00")
    assert Decimal(monthly[0]["total_expenses"]) == Decimal("40.00")
    assert Decimal(monthly[0]["total_loans"]) == Decimal("1000.00")
    assert Decimal(monthly[0]["total_payments"]) == Decimal("0.00")

    yearly = client.get("/reports/yearly").json()
    assert Decimal(yearly[0]["total_loans"]) == Decimal("1000.00")
    assert client.get("/reports/monthly", params={"year": 2023}).json() == []

    dashboard = client.get("/reports/dashboard").json()
    assert Decimal(dashboard["total_balance"]) == Decimal("4260.00")
    assert Decimal(dashboard["total_loaned"]) == Decimal("1000.00")
    assert Decimal(dashboard["total_outstanding"]) == Decimal("1300.00")
    assert dashboard["active_loans_count"] == 1
    assert dashboard["balance_accounts"] == 2
    assert [t["reference"] for t in dashboard["recent_transactions"]] == ["L", "E", "I"]

    recalculated = client.post("/reports/recalculate")
    assert recalculated.status_code == 200
    assert recalculated.json() == {"monthly_reports": 1, "yearly_reports": 1}
    assert client.get("/reports/monthly").json()[0]["total_income"] == monthly[0]["total_income"]
