"""Bank Accounts — CRUD, tenant isolation and balance summary."""

from uuid import uuid4


async def test_create_and_get_account(client, firm_a, bank_account):
    account = await bank_account(opening_balance=2500)
    assert account["current_balance"] == 2500.0

    response = await client.get(f"/api/v1/bank-accounts/{account['id']}", headers=firm_a)
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Operating Account"


async def test_firm_colleague_sees_account(client, firm_a_colleague, bank_account):
    account = await bank_account()
    response = await client.get(
        f"/api/v1/bank-accounts/{account['id']}", headers=firm_a_colleague,
    )
    assert response.status_code == 200


async def test_other_firm_gets_404(client, firm_b, bank_account):
    account = await bank_account()
    response = await client.get(f"/api/v1/bank-accounts/{account['id']}", headers=firm_b)
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Bank account not found"

    listing = await client.get("/api/v1/bank-accounts", headers=firm_b)
    assert listing.json()["pagination"]["total"] == 0


async def test_invalid_id_is_400(client, firm_a):
    response = await client.get("/api/v1/bank-accounts/not-a-uuid", headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid bank account ID format"


async def test_unknown_id_is_404(client, firm_a):
    response = await client.get(f"/api/v1/bank-accounts/{uuid4()}", headers=firm_a)
    assert response.status_code == 404


async def test_update_ignores_balance_fields(client, firm_a, bank_account):
    account = await bank_account()
    response = await client.patch(
        f"/api/v1/bank-accounts/{account['id']}",
        json={"name": "Trust Account", "current_balance": 999999},
        headers=firm_a,
    )
    data = response.json()["data"]
    assert data["name"] == "Trust Account"
    assert data["current_balance"] == 1000.0


async def test_transaction_moves_balance_and_summary(client, firm_a, bank_account):
    account = await bank_account()
    for amount, tx_type in ((500, "credit"), (200, "debit")):
        response = await client.post("/api/v1/bank-transactions", json={
            "account_id": account["id"], "date": "2024-01-10",
            "amount": amount, "type": tx_type, "description": "Manual",
        }, headers=firm_a)
        assert response.status_code == 201

    summary = await client.get(f"/api/v1/bank-accounts/{account['id']}/summary", headers=firm_a)
    data = summary.json()["data"]
    assert data["account"]["current_balance"] == 1300.0
    assert data["transaction_count"] == 2
    assert data["unmatched_count"] == 2
    assert data["last_reconciliation"] is None


async def test_delete_account(client, firm_a, bank_account):
    account = await bank_account()
    response = await client.delete(f"/api/v1/bank-accounts/{account['id']}", headers=firm_a)
    assert response.status_code == 200
    missing = await client.get(f"/api/v1/bank-accounts/{account['id']}", headers=firm_a)
    assert missing.status_code == 404
