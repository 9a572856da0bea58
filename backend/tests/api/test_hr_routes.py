"""Employees & Leave — employee numbering, leave submission, approval and balances."""

from uuid import UUID

from app.models.employee import Employee


async def _leave(client, headers, employee_id, start, end, leave_type="annual"):
    response = await client.post("/api/v1/leave-requests", json={
        "employee_id": employee_id, "leave_type": leave_type,
        "start_date": start, "end_date": end,
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_employee_number_and_duplicate_id(client, firm_a, employee):
    first = await employee()
    assert first["employee_number"] == "EMP-0001"

    response = await client.post("/api/v1/employees", json={
        "first_name": "Other", "last_name": "Person", "id_number": "1234567890",
        "gender": "male", "phone": "+966511111111", "job_title": "Clerk",
        "hire_date": "2024-01-01", "basic_salary": 5000,
    }, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DUPLICATE_ID_NUMBER"


async def test_short_id_number_rejected(client, firm_a):
    response = await client.post("/api/v1/employees", json={
        "first_name": "A", "last_name": "B", "id_number": "123",
        "gender": "male", "phone": "+966511111111", "job_title": "Clerk",
        "hire_date": "2024-01-01", "basic_salary": 5000,
    }, headers=firm_a)
    assert response.status_code == 400


async def test_leave_submit_and_approve_deducts_balance(client, firm_a, employee):
    emp = await employee(hire_date="2015-01-01")
    created = await _leave(client, firm_a, emp["id"], "2030-03-01", "2030-03-05")
    request = created["data"]
    assert request["total_days"] == 5
    assert request["status"] == "draft"
    assert created["conflicts"] == []

    submitted = await client.post(f"/api/v1/leave-requests/{request['id']}/submit", headers=firm_a)
    assert submitted.json()["data"]["status"] == "pending_approval"

    approved = await client.post(f"/api/v1/leave-requests/{request['id']}/approve", headers=firm_a)
    data = approved.json()["data"]
    assert data["status"] == "approved"
    assert data["balance_before"] == 30.0
    assert data["balance_after"] == 25.0

    balance = await client.get(
        f"/api/v1/leave-requests/balance/{emp['id']}?year=2030", headers=firm_a,
    )
    annual = next(b for b in balance.json()["data"]["balances"] if b["leave_type"] == "annual")
    assert annual["used"] == 5.0
    assert annual["remaining"] == 25.0


async def test_overlapping_submission_blocked(client, firm_a, employee):
    emp = await employee()
    first = (await _leave(client, firm_a, emp["id"], "2030-04-01", "2030-04-03"))["data"]
    await client.post(f"/api/v1/leave-requests/{first['id']}/submit", headers=firm_a)

    second = await _leave(client, firm_a, emp["id"], "2030-04-02", "2030-04-04")
    assert second["conflicts"][0]["type"] == "overlap"

    response = await client.post(
        f"/api/v1/leave-requests/{second['data']['id']}/submit", headers=firm_a,
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "LEAVE_CONFLICT"
    assert error["details"][0]["severity"] == "high"


async def test_reject_requires_reason(client, firm_a, employee):
    emp = await employee()
    request = (await _leave(client, firm_a, emp["id"], "2030-05-01", "2030-05-01"))["data"]
    await client.post(f"/api/v1/leave-requests/{request['id']}/submit", headers=firm_a)

    missing = await client.post(
        f"/api/v1/leave-requests/{request['id']}/reject", json={}, headers=firm_a,
    )
    assert missing.status_code == 400

    rejected = await client.post(
        f"/api/v1/leave-requests/{request['id']}/reject",
        json={"reason": "Busy trial period"}, headers=firm_a,
    )
    assert rejected.json()["data"]["status"] == "rejected"


async def test_inverted_dates_rejected(client, firm_a, employee):
    emp = await employee()
    response = await client.post("/api/v1/leave-requests", json={
        "employee_id": emp["id"], "leave_type": "annual",
        "start_date": "2030-03-05", "end_date": "2030-03-01",
    }, headers=firm_a)
    assert response.status_code == 400


async def test_null_required_field_refused(client, firm_a, employee):
    emp = await employee()
    response = await client.patch(
        f"/api/v1/employees/{emp['id']}", json={"first_name": None}, headers=firm_a,
    )
    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "first_name"

    fetched = await client.get(f"/api/v1/employees/{emp['id']}", headers=firm_a)
    assert fetched.json()["data"]["first_name"] == "Sara"


async def test_employee_number_past_four_digits(client, employee, test_session_factory):
    first = await employee()
    async with test_session_factory() as session:
        row = await session.get(Employee, UUID(first["id"]))
        row.employee_number = "EMP-9999"
        await session.commit()

    second = await employee(id_number="2234567890")
    assert second["employee_number"] == "EMP-10000"
    third = await employee(id_number="3234567890")
    assert third["employee_number"] == "EMP-10001"


async def test_allowances_add_and_remove(client, firm_a, employee):
    emp = await employee()
    url = f"/api/v1/employees/{emp['id']}/allowances"

    added = await client.post(url, json={"name": "Housing", "amount": 3000}, headers=firm_a)
    assert added.status_code == 201
    allowance = added.json()["data"]["allowances"][0]
    assert allowance["amount"] == 3000.0

    removed = await client.delete(f"{url}/{allowance['allowance_id']}", headers=firm_a)
    assert removed.status_code == 200
    assert removed.json()["data"]["allowances"] == []

    again = await client.delete(f"{url}/{allowance['allowance_id']}", headers=firm_a)
    assert again.status_code == 404
