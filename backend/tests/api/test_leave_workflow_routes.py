"""Leave Workflow — cancellation refunds, pending queue, team coverage, calendar, return and extension."""

BASE = "/api/v1/leave-requests"


async def _request(client, headers, employee_id, start, end):
    response = await client.post(BASE, json={
        "employee_id": employee_id, "leave_type": "annual",
        "start_date": start, "end_date": end,
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _approved(client, headers, employee_id, start, end):
    request = await _request(client, headers, employee_id, start, end)
    await client.post(f"{BASE}/{request['id']}/submit", headers=headers)
    response = await client.post(f"{BASE}/{request['id']}/approve", headers=headers)
    assert response.json()["data"]["status"] == "approved", response.text
    return response.json()["data"]


async def _annual(client, headers, employee_id):
    response = await client.get(f"{BASE}/balance/{employee_id}?year=2030", headers=headers)
    return next(b for b in response.json()["data"]["balances"] if b["leave_type"] == "annual")


async def test_cancel_approved_restores_balance(client, firm_a, employee):
    emp = await employee()
    request = await _approved(client, firm_a, emp["id"], "2030-03-01", "2030-03-05")
    assert (await _annual(client, firm_a, emp["id"]))["used"] == 5.0

    response = await client.post(
        f"{BASE}/{request['id']}/cancel", json={"reason": "Trial moved"}, headers=firm_a,
    )
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation"]["balance_restored"] is True
    assert (await _annual(client, firm_a, emp["id"]))["used"] == 0.0

    again = await client.post(f"{BASE}/{request['id']}/cancel", headers=firm_a)
    assert again.status_code == 400


async def test_cancel_draft_restores_nothing(client, firm_a, employee):
    emp = await employee()
    request = await _request(client, firm_a, emp["id"], "2030-03-01", "2030-03-02")
    response = await client.post(f"{BASE}/{request['id']}/cancel", headers=firm_a)
    assert response.json()["data"]["cancellation"]["balance_restored"] is False


async def test_pending_approvals_lists_submitted_only(client, firm_a, firm_b, employee):
    emp = await employee()
    submitted = await _request(client, firm_a, emp["id"], "2030-04-01", "2030-04-02")
    await client.post(f"{BASE}/{submitted['id']}/submit", headers=firm_a)
    await _request(client, firm_a, emp["id"], "2030-05-01", "2030-05-02")

    response = await client.get(f"{BASE}/pending-approvals", headers=firm_a)
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == submitted["id"]

    other = await client.get(f"{BASE}/pending-approvals", headers=firm_b)
    assert other.json()["count"] == 0


async def test_team_coverage_severity(client, firm_a, employee):
    first = await employee(first_name="Omar", id_number="2000000001")
    second = await employee(first_name="Lina", id_number="2000000002")
    third = await employee(first_name="Huda", id_number="2000000003")
    await _approved(client, firm_a, first["id"], "2030-06-01", "2030-06-05")

    async def _coverage(start, end):
        response = await client.post(f"{BASE}/check-conflicts", json={
            "employee_id": third["id"], "start_date": start, "end_date": end,
        }, headers=firm_a)
        data = response.json()["data"]
        return data, next(c for c in data["conflicts"] if c["type"] == "team_coverage")

    data, coverage = await _coverage("2030-06-04", "2030-06-04")
    assert coverage["severity"] == "low"
    assert data["blocking"] is False

    await _approved(client, firm_a, second["id"], "2030-06-03", "2030-06-07")
    data, coverage = await _coverage("2030-06-04", "2030-06-04")
    assert coverage["severity"] == "medium"
    assert coverage["employees"] == ["Lina Alharbi", "Omar Alharbi"]
    assert data["blocking"] is False


async def test_team_calendar(client, firm_a, employee):
    emp = await employee()
    await _approved(client, firm_a, emp["id"], "2030-07-01", "2030-07-03")
    await _request(client, firm_a, emp["id"], "2030-07-05", "2030-07-06")

    response = await client.get(
        f"{BASE}/team-calendar?start_date=2030-07-02&end_date=2030-07-10&department=Litigation",
        headers=firm_a,
    )
    data = response.json()["data"]
    assert sorted(data["calendar"]) == ["2030-07-02", "2030-07-03"]
    assert data["calendar"]["2030-07-02"][0]["employee_name"] == "Sara Alharbi"
    assert len(data["leaves"]) == 1

    other_team = await client.get(
        f"{BASE}/team-calendar?start_date=2030-07-02&end_date=2030-07-10&department=Tax",
        headers=firm_a,
    )
    assert other_team.json()["data"]["calendar"] == {}

    inverted = await client.get(
        f"{BASE}/team-calendar?start_date=2030-07-10&end_date=2030-07-02", headers=firm_a,
    )
    assert inverted.status_code == 400


async def test_confirm_return_records_lateness(client, firm_a, employee):
    emp = await employee()
    request = await _approved(client, firm_a, emp["id"], "2030-08-01", "2030-08-05")

    response = await client.post(
        f"{BASE}/{request['id']}/confirm-return",
        json={"actual_return_date": "2030-08-08", "notes": "Flight delayed"}, headers=firm_a,
    )
    body = response.json()
    assert body["message"] == "Return from leave confirmed"
    assert body["data"]["status"] == "completed"
    info = body["data"]["return_info"]
    assert info["expected_return_date"] == "2030-08-06"
    assert info["returned_late"] is True
    assert info["late_days"] == 2

    again = await client.post(f"{BASE}/{request['id']}/confirm-return", headers=firm_a)
    assert again.status_code == 400


async def test_confirm_return_requires_approval(client, firm_a, employee):
    emp = await employee()
    request = await _request(client, firm_a, emp["id"], "2030-08-01", "2030-08-05")
    response = await client.post(f"{BASE}/{request['id']}/confirm-return", headers=firm_a)
    assert response.status_code == 400


async def test_request_extension(client, firm_a, employee):
    emp = await employee()
    request = await _approved(client, firm_a, emp["id"], "2030-09-01", "2030-09-05")
    url = f"{BASE}/{request['id']}/request-extension"

    short = await client.post(url, json={"new_end_date": "2030-09-05", "reason": "More rest"}, headers=firm_a)
    assert short.status_code == 400
    assert short.json()["error"]["message"] == "New end date must be after current end date"

    response = await client.post(url, json={"new_end_date": "2030-09-08", "reason": "More rest"}, headers=firm_a)
    assert response.status_code == 201
    extension = response.json()["data"]
    assert extension["start_date"] == "2030-09-06"
    assert extension["total_days"] == 3
    assert extension["extension_days"] == 3
    assert extension["is_extension"] is True
    assert extension["original_request_id"] == request["id"]
    assert extension["status"] == "pending_approval"

    pending = await client.get(f"{BASE}/pending-approvals", headers=firm_a)
    assert [r["id"] for r in pending.json()["data"]] == [extension["id"]]


async def test_extension_of_unapproved_request_refused(client, firm_a, employee):
    emp = await employee()
    request = await _request(client, firm_a, emp["id"], "2030-09-01", "2030-09-05")
    response = await client.post(
        f"{BASE}/{request['id']}/request-extension",
        json={"new_end_date": "2030-09-08", "reason": "More rest"}, headers=firm_a,
    )
    assert response.status_code == 400
