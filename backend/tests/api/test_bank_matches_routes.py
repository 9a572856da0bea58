"""Bank Matches — auto-match, stats, swapped-in matchers, manual decisions and split matches."""

from uuid import uuid4

from app.api.dependencies import get_matcher
from app.core.boundary_protocols import ScoredCandidate
from app.main import app


async def _seed(client, headers, account_id, amount, day, tx_type="credit", reference=""):
    await client.post("/api/v1/bank-transactions", json={
        "account_id": account_id, "date": day, "amount": amount,
        "type": tx_type, "reference": reference,
    }, headers=headers)
    await client.post("/api/v1/ledger-entries", json={
        "account_id": account_id, "date": day, "amount": amount,
        "type": tx_type, "reference": reference,
    }, headers=headers)


async def test_auto_match_confirms_exact_pairs(client, firm_a, bank_account):
    account = await bank_account()
    await _seed(client, firm_a, account["id"], 750, "2024-02-01", reference="INV-1")
    await client.post("/api/v1/bank-transactions", json={
        "account_id": account["id"], "date": "2024-02-02", "amount": 99, "type": "debit",
    }, headers=firm_a)

    response = await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_a)
    assert response.status_code == 200
    assert response.json()["data"] == {
        "processed": 2, "matched": 1, "suggested": 0, "errors": [],
    }

    stats = await client.get("/api/v1/bank-matches/stats", headers=firm_a)
    data = stats.json()["data"]
    assert data["total"] == 1
    assert data["by_status"] == {"confirmed": 1}
    assert data["average_score"] == 100.0


async def test_auto_match_other_tenant_account_404(client, firm_b, bank_account):
    account = await bank_account()
    response = await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_b)
    assert response.status_code == 404


class _FailingMatcher:
    def candidates(self, transaction, entries):
        raise RuntimeError("scoring backend unavailable")


class _LowScoreMatcher:
    def candidates(self, transaction, entries):
        return [ScoredCandidate(entry_id=e.id, score=60.0, amount_exact=False) for e in entries]


async def test_matcher_failure_reported_per_transaction(client, firm_a, bank_account):
    account = await bank_account()
    await _seed(client, firm_a, account["id"], 10, "2024-02-01")
    app.dependency_overrides[get_matcher] = lambda: _FailingMatcher()

    response = await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_a)
    data = response.json()["data"]
    assert data["matched"] == 0
    assert data["errors"][0]["error"] == "scoring backend unavailable"


async def test_inexact_candidates_become_suggestions(client, firm_a, bank_account):
    account = await bank_account()
    await _seed(client, firm_a, account["id"], 10, "2024-02-01")
    app.dependency_overrides[get_matcher] = lambda: _LowScoreMatcher()

    response = await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_a)
    assert response.json()["data"]["suggested"] == 1

    suggestions = await client.get(
        f"/api/v1/bank-matches/suggestions/{account['id']}", headers=firm_a,
    )
    match = suggestions.json()["data"][0]
    confirmed = await client.post(f"/api/v1/bank-matches/{match['id']}/confirm", headers=firm_a)
    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["status"] == "confirmed"


class _UnknownEntryMatcher:
    def candidates(self, transaction, entries):
        return [ScoredCandidate(entry_id=str(uuid4()), score=100.0, amount_exact=True)]


async def test_unknown_entry_from_matcher_reported(client, firm_a, bank_account):
    account = await bank_account()
    await _seed(client, firm_a, account["id"], 10, "2024-02-01")
    app.dependency_overrides[get_matcher] = lambda: _UnknownEntryMatcher()

    response = await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_a)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["matched"] == 0
    assert data["errors"][0]["error"] == "Matcher returned unknown or already used ledger entries"


async def test_reject_suggestion_leaves_transaction_unmatched(client, firm_a, bank_account):
    account = await bank_account()
    await _seed(client, firm_a, account["id"], 10, "2024-02-01")
    app.dependency_overrides[get_matcher] = lambda: _LowScoreMatcher()
    await client.post(f"/api/v1/bank-matches/auto/{account['id']}", headers=firm_a)
    suggestions = await client.get(
        f"/api/v1/bank-matches/suggestions/{account['id']}", headers=firm_a,
    )
    match = suggestions.json()["data"][0]

    rejected = await client.post(
        f"/api/v1/bank-matches/{match['id']}/reject",
        json={"reason": "Different client"}, headers=firm_a,
    )
    assert rejected.status_code == 200
    data = rejected.json()["data"]
    assert data["status"] == "rejected"
    assert data["rejection_reason"] == "Different client"

    tx = await client.get(
        f"/api/v1/bank-transactions/{match['bank_transaction_id']}", headers=firm_a,
    )
    assert tx.json()["data"]["is_matched"] is False

    again = await client.post(f"/api/v1/bank-matches/{match['id']}/reject", headers=firm_a)
    assert again.status_code == 400


async def _transaction(client, headers, account_id, amount, day="2024-01-10"):
    response = await client.post("/api/v1/bank-transactions", json={
        "account_id": account_id, "date": day, "amount": amount, "type": "credit",
    }, headers=headers)
    return response.json()["data"]


async def _entry(client, headers, account_id, amount, day="2024-01-10"):
    response = await client.post("/api/v1/ledger-entries", json={
        "account_id": account_id, "date": day, "amount": amount, "type": "credit",
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_split_match_across_entries(client, firm_a, bank_account):
    account = await bank_account()
    tx = await _transaction(client, firm_a, account["id"], 500)
    first = await _entry(client, firm_a, account["id"], 300)
    second = await _entry(client, firm_a, account["id"], 200)

    response = await client.post("/api/v1/bank-matches/split", json={
        "bank_transaction_id": tx["id"],
        "splits": [
            {"ledger_entry_id": first["id"], "amount": 300},
            {"ledger_entry_id": second["id"], "amount": 200},
        ],
    }, headers=firm_a)
    assert response.status_code == 201, response.text
    match = response.json()["data"]
    assert match["match_type"] == "split"
    assert match["status"] == "confirmed"
    assert [s["amount"] for s in match["splits"]] == [300.0, 200.0]

    fetched = await client.get(f"/api/v1/bank-transactions/{tx['id']}", headers=firm_a)
    assert fetched.json()["data"]["is_matched"] is True


async def test_split_amounts_must_add_up(client, firm_a, bank_account):
    account = await bank_account()
    tx = await _transaction(client, firm_a, account["id"], 500)
    first = await _entry(client, firm_a, account["id"], 300)
    second = await _entry(client, firm_a, account["id"], 150)

    response = await client.post("/api/v1/bank-matches/split", json={
        "bank_transaction_id": tx["id"],
        "splits": [
            {"ledger_entry_id": first["id"], "amount": 300},
            {"ledger_entry_id": second["id"], "amount": 150},
        ],
    }, headers=firm_a)
    assert response.status_code == 400
    assert "must equal the transaction amount" in response.json()["error"]["message"]


async def test_split_other_tenant_entry_refused(client, firm_a, firm_b, bank_account):
    account = await bank_account()
    tx = await _transaction(client, firm_a, account["id"], 200)
    foreign = await client.post("/api/v1/ledger-entries", json={
        "date": "2024-01-10", "amount": 200, "type": "credit",
    }, headers=firm_b)

    response = await client.post("/api/v1/bank-matches/split", json={
        "bank_transaction_id": tx["id"],
        "splits": [{"ledger_entry_id": foreign.json()["data"]["id"], "amount": 200}],
    }, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "One or more ledger entries were not found"


async def _split(client, headers, account_id, amount):
    tx = await _transaction(client, headers, account_id, amount)
    entry = await _entry(client, headers, account_id, amount)
    response = await client.post("/api/v1/bank-matches/split", json={
        "bank_transaction_id": tx["id"],
        "splits": [{"ledger_entry_id": entry["id"], "amount": amount}],
    }, headers=headers)
    return tx, response.json()["data"]


async def test_unmatch_releases_both_sides(client, firm_a, bank_account):
    account = await bank_account()
    tx, match = await _split(client, firm_a, account["id"], 500)

    response = await client.post(f"/api/v1/bank-matches/{match['id']}/unmatch", headers=firm_a)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "unmatched"

    fetched = await client.get(f"/api/v1/bank-transactions/{tx['id']}", headers=firm_a)
    assert fetched.json()["data"]["is_matched"] is False


async def test_unmatch_refused_once_reconciled(client, firm_a, bank_account):
    account = await bank_account(opening_balance=1000)
    tx, match = await _split(client, firm_a, account["id"], 500)

    started = await client.post("/api/v1/bank-reconciliations", json={
        "account_id": account["id"], "end_date": "2024-01-31", "statement_balance": 1500,
    }, headers=firm_a)
    rec_id = started.json()["data"]["id"]
    await client.post(
        f"/api/v1/bank-reconciliations/{rec_id}/clear",
        json={"transaction_id": tx["id"]}, headers=firm_a,
    )
    done = await client.post(f"/api/v1/bank-reconciliations/{rec_id}/complete", headers=firm_a)
    assert done.status_code == 200, done.text

    response = await client.post(f"/api/v1/bank-matches/{match['id']}/unmatch", headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cannot unmatch a reconciled transaction"
