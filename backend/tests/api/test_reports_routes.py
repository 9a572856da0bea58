"""Reports — definition validation, execution with runtime filters, export, clone and ownership."""

import csv
import io

REPORT = {
    "name": "Invoice register",
    "type": "table",
    "data_sources": ["invoices"],
    "columns": ["invoice_number", "client_name", "status", "total_amount"],
}


async def _invoice(client, headers, client_name):
    await client.post("/api/v1/invoices", json={
        "client_name": client_name,
        "items": [{"description": "Retainer", "quantity": 1, "unit_price": 1000}],
        "vat_rate": 15,
    }, headers=headers)


async def _report(client, headers, **overrides):
    response = await client.post("/api/v1/reports", json={**REPORT, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_validate_collects_errors(client, firm_a):
    response = await client.post("/api/v1/reports/validate", json={
        "data_sources": ["invoices"], "columns": ["salary"],
    }, headers=firm_a)
    assert response.json() == {"valid": False, "errors": ["Unknown column: salary"]}


async def test_invalid_definition_refused(client, firm_a):
    response = await client.post("/api/v1/reports", json={**REPORT, "data_sources": ["payroll"]}, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REPORT_DEFINITION"


async def test_execute_is_tenant_scoped_and_counts_runs(client, firm_a, firm_b):
    await _invoice(client, firm_a, "Client One")
    await _invoice(client, firm_a, "Client Two")
    await _invoice(client, firm_b, "Other Firm Client")
    report = await _report(client, firm_a)

    response = await client.get(f"/api/v1/reports/{report['id']}/execute", headers=firm_a)
    data = response.json()["data"]
    assert data["columns"] == REPORT["columns"]
    assert data["row_count"] == 2
    assert {r["client_name"] for r in data["rows"]} == {"Client One", "Client Two"}

    filtered = await client.get(
        f"/api/v1/reports/{report['id']}/execute?client_name=Client%20Two", headers=firm_a,
    )
    assert filtered.json()["data"]["row_count"] == 1

    fetched = await client.get(f"/api/v1/reports/{report['id']}", headers=firm_a)
    assert fetched.json()["data"]["run_count"] == 2


async def test_group_by_counts(client, firm_a):
    await _invoice(client, firm_a, "Client One")
    await _invoice(client, firm_a, "Client Two")
    report = await _report(client, firm_a, group_by=["status"])

    response = await client.get(f"/api/v1/reports/{report['id']}/execute", headers=firm_a)
    data = response.json()["data"]
    assert data["columns"] == ["status", "count"]
    assert data["rows"] == [{"status": "draft", "count": 2}]


async def test_row_limit_bounds(client, firm_a):
    report = await _report(client, firm_a)
    for bad in ("60000", "0"):
        response = await client.get(
            f"/api/v1/reports/{report['id']}/execute?_limit={bad}", headers=firm_a,
        )
        assert response.status_code == 400


async def test_csv_export(client, firm_a):
    await _invoice(client, firm_a, "Client One")
    report = await _report(client, firm_a)

    response = await client.get(f"/api/v1/reports/{report['id']}/export/csv", headers=firm_a)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert rows[0]["client_name"] == "Client One"
    assert rows[0]["total_amount"] == "1150.0"


async def test_unsupported_export_format(client, firm_a):
    report = await _report(client, firm_a)
    response = await client.get(f"/api/v1/reports/{report['id']}/export/pdf", headers=firm_a)
    assert response.status_code == 400


async def test_clone_is_private_copy(client, firm_a):
    report = await _report(client, firm_a, scope="team", is_public=True)
    response = await client.post(f"/api/v1/reports/{report['id']}/clone", headers=firm_a)
    assert response.status_code == 201
    clone = response.json()["data"]
    assert clone["name"] == "Invoice register (Copy)"
    assert clone["scope"] == "personal"
    assert clone["is_public"] is False


async def test_private_report_hidden_from_colleague(client, firm_a, firm_a_colleague, firm_b):
    report = await _report(client, firm_a)
    colleague = await client.get(f"/api/v1/reports/{report['id']}", headers=firm_a_colleague)
    assert colleague.status_code == 403
    outsider = await client.get(f"/api/v1/reports/{report['id']}", headers=firm_b)
    assert outsider.status_code == 404


async def test_only_owner_modifies_shared_report(client, firm_a, firm_a_colleague):
    report = await _report(client, firm_a, scope="team")
    read = await client.get(f"/api/v1/reports/{report['id']}", headers=firm_a_colleague)
    assert read.status_code == 200

    patch = await client.patch(
        f"/api/v1/reports/{report['id']}", json={"name": "Renamed"}, headers=firm_a_colleague,
    )
    assert patch.status_code == 403


async def test_schedule_requires_valid_recipients(client, firm_a):
    report = await _report(client, firm_a)
    url = f"/api/v1/reports/{report['id']}/schedule"

    bad = await client.put(url, json={"enabled": True, "recipients": ["nope"]}, headers=firm_a)
    assert bad.status_code == 400
    empty = await client.put(url, json={"enabled": True, "recipients": []}, headers=firm_a)
    assert empty.status_code == 400

    ok = await client.put(url, json={
        "enabled": True, "frequency": "monthly", "recipients": ["partner@firm.sa"],
    }, headers=firm_a)
    assert ok.json()["data"]["schedule"]["frequency"] == "monthly"


async def test_is_public_must_be_boolean(client, firm_a, firm_a_colleague):
    refused = await client.post(
        "/api/v1/reports", json={**REPORT, "is_public": "false"}, headers=firm_a,
    )
    assert refused.status_code == 400
    assert refused.json()["error"]["details"][0]["field"] == "is_public"

    report = await _report(client, firm_a, is_public=False)
    patch = await client.patch(
        f"/api/v1/reports/{report['id']}", json={"is_public": "false"}, headers=firm_a,
    )
    assert patch.status_code == 400
    colleague = await client.get(f"/api/v1/reports/{report['id']}", headers=firm_a_colleague)
    assert colleague.status_code == 403


async def test_contains_filter_matches_wildcards_literally(client, firm_a):
    await _invoice(client, firm_a, "Client 50% Off")
    await _invoice(client, firm_a, "Client 500")
    report = await _report(client, firm_a, filters=[
        {"field": "client_name", "operator": "contains", "value": "50%"},
    ])

    response = await client.get(f"/api/v1/reports/{report['id']}/execute", headers=firm_a)
    rows = response.json()["data"]["rows"]
    assert [r["client_name"] for r in rows] == ["Client 50% Off"]


async def test_contains_filter_refused_on_amounts(client, firm_a):
    response = await client.post("/api/v1/reports", json={
        **REPORT, "filters": [{"field": "total_amount", "operator": "contains", "value": "1"}],
    }, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REPORT_DEFINITION"
