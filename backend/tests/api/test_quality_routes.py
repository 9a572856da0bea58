"""Quality — firm-only access, templates, inspection evaluation and corrective actions."""

TEMPLATE = {
    "name": "Contract intake review",
    "parameters": [
        {"parameter": "Signatures complete"},
        {"parameter": "Stamp duty paid"},
    ],
}


async def _inspection(client, headers, **overrides):
    payload = {
        "reference_type": "delivery_note",
        "reference_id": "DN-100",
        "inspection_type": "incoming",
        "item_code": "CONTRACT-PACK",
        "readings": [
            {"parameter": "Signatures complete", "status": "accepted"},
            {"parameter": "Stamp duty paid", "status": "rejected"},
        ],
    }
    payload.update(overrides)
    response = await client.post("/api/v1/quality/inspections", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_solo_lawyer_refused(client, solo):
    response = await client.get("/api/v1/quality/inspections", headers=solo)
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Firm ID is required"


async def test_inspection_from_template_starts_pending(client, firm_a):
    template = await client.post("/api/v1/quality/templates", json=TEMPLATE, headers=firm_a)
    template_id = template.json()["data"]["id"]

    inspection = await _inspection(client, firm_a, template_id=template_id, readings=None)
    assert inspection["inspection_number"].startswith("QI-")
    assert [r["status"] for r in inspection["readings"]] == ["pending", "pending"]

    blocked = await client.delete(f"/api/v1/quality/templates/{template_id}", headers=firm_a)
    assert blocked.status_code == 400
    assert blocked.json()["error"]["code"] == "TEMPLATE_IN_USE"


async def test_submit_partial_creates_corrective_action(client, firm_a):
    settings = await client.put(
        "/api/v1/quality/settings", json={"auto_create_action": True}, headers=firm_a,
    )
    assert settings.json()["data"]["auto_create_action"] is True

    inspection = await _inspection(client, firm_a)
    response = await client.post(
        f"/api/v1/quality/inspections/{inspection['id']}/submit", headers=firm_a,
    )
    body = response.json()
    assert body["data"]["status"] == "partially_accepted"
    assert body["data"]["accepted_qty"] == 1
    assert body["data"]["rejected_qty"] == 1
    assert body["corrective_action"]["status"] == "open"
    assert body["corrective_action"]["inspection_id"] == inspection["id"]

    again = await client.post(
        f"/api/v1/quality/inspections/{inspection['id']}/submit", headers=firm_a,
    )
    assert again.status_code == 400

    reopen = await client.patch(
        f"/api/v1/quality/inspections/{inspection['id']}",
        json={"status": "pending"}, headers=firm_a,
    )
    assert reopen.status_code == 400


async def test_submit_without_auto_action(client, firm_a):
    inspection = await _inspection(client, firm_a)
    response = await client.post(
        f"/api/v1/quality/inspections/{inspection['id']}/submit", headers=firm_a,
    )
    assert response.json()["corrective_action"] is None


async def test_action_text_length_checked(client, firm_a):
    response = await client.post("/api/v1/quality/actions", json={
        "action_type": "corrective", "problem": "short", "action": "Fix the intake checklist",
        "responsible_person": "lawyer-a1", "target_date": "2030-01-01",
    }, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Problem must be between 10 and 5000 characters"


async def test_completed_action_cannot_reopen(client, firm_a):
    created = await client.post("/api/v1/quality/actions", json={
        "action_type": "preventive",
        "problem": "Stamp duty receipts go missing",
        "action": "Scan receipts at intake",
        "responsible_person": "lawyer-a1",
        "target_date": "2030-01-01",
    }, headers=firm_a)
    assert created.status_code == 201
    action_id = created.json()["data"]["id"]

    done = await client.patch(
        f"/api/v1/quality/actions/{action_id}", json={"status": "completed"}, headers=firm_a,
    )
    assert done.json()["data"]["completed_date"] is not None

    reopened = await client.patch(
        f"/api/v1/quality/actions/{action_id}", json={"status": "open"}, headers=firm_a,
    )
    assert reopened.status_code == 400


async def test_stats_rates(client, firm_a):
    first = await _inspection(client, firm_a, readings=[{"parameter": "A", "status": "accepted"}])
    second = await _inspection(client, firm_a, readings=[{"parameter": "A", "status": "rejected"}])
    for inspection in (first, second):
        await client.post(f"/api/v1/quality/inspections/{inspection['id']}/submit", headers=firm_a)

    stats = await client.get("/api/v1/quality/stats", headers=firm_a)
    data = stats.json()["data"]
    assert data["total_inspections"] == 2
    assert data["pass_rate"] == 50.0
    assert data["fail_rate"] == 50.0
