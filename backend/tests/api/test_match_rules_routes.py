"""Match Rules — condition/action validation, account scoping, dry-run and ordering."""

RULE = {
    "name": "Court fees",
    "priority": 5,
    "conditions": [
        {"field": "description", "operator": "contains", "value": "court"},
        {"field": "amount", "operator": "between", "value": 100, "value2": 1000},
    ],
    "action": {"type": "categorize", "category": "court_fees"},
}


async def _rule(client, headers, **overrides):
    response = await client.post("/api/v1/match-rules", json={**RULE, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_invalid_operator_rejected(client, firm_a):
    response = await client.post("/api/v1/match-rules", json={
        **RULE, "conditions": [{"field": "amount", "operator": "contains", "value": "5"}],
    }, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Condition 1: operator 'contains' not valid for amount"


async def test_categorize_needs_category(client, firm_a):
    response = await client.post("/api/v1/match-rules", json={
        **RULE, "action": {"type": "categorize"},
    }, headers=firm_a)
    assert response.status_code == 400


async def test_dry_run(client, firm_a):
    rule = await _rule(client, firm_a)
    url = f"/api/v1/match-rules/{rule['id']}/test"

    hit = await client.post(url, json={"description": "COURT FILING FEE", "amount": 250}, headers=firm_a)
    assert hit.json()["data"] == {"matches": True, "action": RULE["action"]}
    miss = await client.post(url, json={"description": "court filing", "amount": 5000}, headers=firm_a)
    assert miss.json()["data"] == {"matches": False, "action": None}


async def test_listed_by_priority(client, firm_a):
    await _rule(client, firm_a, name="Low", priority=1)
    await _rule(client, firm_a, name="High", priority=9)
    response = await client.get("/api/v1/match-rules", headers=firm_a)
    assert [r["name"] for r in response.json()["data"]] == ["High", "Low"]


async def test_accounts_must_belong_to_tenant(client, firm_a, firm_b, bank_account):
    account = await bank_account()
    response = await client.post("/api/v1/match-rules", json={
        **RULE, "bank_account_ids": [account["id"]],
    }, headers=firm_b)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "One or more bank accounts were not found"

    own = await _rule(client, firm_a, bank_account_ids=[account["id"]])
    assert own["bank_account_ids"] == [account["id"]]


async def test_stats(client, firm_a):
    await _rule(client, firm_a)
    await _rule(client, firm_a, name="Disabled", is_active=False)
    response = await client.get("/api/v1/match-rules/stats", headers=firm_a)
    assert response.json()["data"] == {"total": 2, "active": 1, "total_applied": 0}


async def test_flags_must_be_booleans(client, firm_a):
    response = await client.post(
        "/api/v1/match-rules", json={**RULE, "is_active": "false"}, headers=firm_a,
    )
    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "is_active"
