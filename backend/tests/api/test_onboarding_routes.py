"""Onboarding — default checklist, task progress, one open onboarding per employee, probation decisions."""

from datetime import date, timedelta


async def _onboarding(client, headers, employee_id, **overrides):
    body = {"employee_id": employee_id, "start_date": "2024-02-01", **overrides}
    return await client.post("/api/v1/onboarding", json=body, headers=headers)


async def test_default_tasks_and_probation_end(client, firm_a, employee):
    staff = await employee()
    response = await _onboarding(client, firm_a, staff["id"])
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert len(data["tasks"]) == 7
    assert data["probation_end_date"] == "2024-05-01"
    assert data["probation_status"] == "active"


async def test_probation_period_capped(client, firm_a, employee):
    staff = await employee()
    response = await _onboarding(client, firm_a, staff["id"], probation_period=200)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Probation period cannot exceed 180 days"


async def test_one_open_onboarding_per_employee(client, firm_a, employee):
    staff = await employee()
    await _onboarding(client, firm_a, staff["id"])
    again = await _onboarding(client, firm_a, staff["id"])
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "ONBOARDING_EXISTS"


async def test_task_completion_progress(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"], tasks=[
        {"name": "Sign contract"}, {"name": "Laptop", "category": "it"},
    ])).json()["data"]
    task_id = created["tasks"][0]["task_id"]

    response = await client.post(
        f"/api/v1/onboarding/{created['id']}/tasks/{task_id}/complete",
        json={"notes": "Signed in person"}, headers=firm_a,
    )
    data = response.json()["data"]
    assert data["task"]["completed"] is True
    assert data["progress"] == {"completed": 1, "total": 2, "percentage": 50}

    missing = await client.post(
        f"/api/v1/onboarding/{created['id']}/tasks/no-such-task/complete", headers=firm_a,
    )
    assert missing.status_code == 404


async def test_status_in_progress_stamps_started_at(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"])).json()["data"]
    url = f"/api/v1/onboarding/{created['id']}/status"
    first = (await client.patch(url, json={"status": "in_progress"}, headers=firm_a)).json()["data"]
    await client.patch(url, json={"status": "on_hold"}, headers=firm_a)
    second = (await client.patch(url, json={"status": "in_progress"}, headers=firm_a)).json()["data"]
    assert first["started_at"] is not None
    assert second["started_at"][:19] == first["started_at"][:19]


async def test_terminate_cancels_and_decides_once(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"])).json()["data"]
    url = f"/api/v1/onboarding/{created['id']}/probation/complete"

    response = await client.post(url, json={
        "decision": "terminate", "reason": "Performance", "decision_date": "2024-03-15",
    }, headers=firm_a)
    data = response.json()["data"]
    assert data["probation_status"] == "failed"
    assert data["status"] == "cancelled"
    assert data["termination"]["article"] == "Article 53"

    again = await client.post(url, json={"decision": "confirm"}, headers=firm_a)
    assert again.status_code == 400


async def test_other_firm_employee_refused(client, firm_b, employee):
    staff = await employee()
    response = await _onboarding(client, firm_b, staff["id"])
    assert response.status_code == 403


async def test_probation_reviews_appended(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"])).json()["data"]
    url = f"/api/v1/onboarding/{created['id']}/probation/reviews"

    response = await client.post(url, json={
        "review_type": "30_day", "scheduled_date": "2024-03-02", "rating": 4,
    }, headers=firm_a)
    assert response.status_code == 201
    review = response.json()["data"]
    assert review["recommendation"] == "on_track"
    assert review["reviewed_by"] == "lawyer-a1"

    bad = await client.post(url, json={
        "review_type": "45_day", "scheduled_date": "2024-03-02",
    }, headers=firm_a)
    assert bad.status_code == 400

    fetched = await client.get(f"/api/v1/onboarding/{created['id']}", headers=firm_a)
    assert [r["review_id"] for r in fetched.json()["data"]["probation_reviews"]] == [review["review_id"]]


async def test_add_checklist_task(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"], tasks=[{"name": "Sign contract"}])).json()["data"]

    response = await client.post(f"/api/v1/onboarding/{created['id']}/tasks", json={
        "name": "Shadow a hearing", "due_date": "2024-02-20",
    }, headers=firm_a)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["task"]["responsible"] == "hr"
    assert data["task"]["priority"] == "medium"
    assert data["task"]["due_date"] == "2024-02-20"
    assert data["progress"] == {"completed": 0, "total": 2, "percentage": 0}


async def test_complete_onboarding_records_review(client, firm_a, employee):
    staff = await employee()
    created = (await _onboarding(client, firm_a, staff["id"], start_date="2024-01-01")).json()["data"]
    url = f"/api/v1/onboarding/{created['id']}/complete"

    response = await client.post(url, json={
        "final_review": {"overall_assessment": "good"},
        "outstanding_items": ["Return visitor badge"],
    }, headers=firm_a)
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["completed_at"] is not None
    completion = data["completion"]
    assert completion["final_review"] == {
        "overall_assessment": "good", "ready_for_full_role": True, "notes": None,
    }
    assert completion["outstanding_items"] == ["Return visitor badge"]
    assert completion["closed_by"] == "lawyer-a1"
    assert completion["total_duration_days"] == (date.today() - date(2024, 1, 1)).days

    again = await client.post(url, headers=firm_a)
    assert again.status_code == 400
    closed = await client.post(
        f"/api/v1/onboarding/{created['id']}/tasks", json={"name": "Late task"}, headers=firm_a,
    )
    assert closed.status_code == 400


async def test_employee_history_and_upcoming_reviews(client, firm_a, firm_b, employee):
    today = date.today()
    staff = await employee()
    old = (await _onboarding(client, firm_a, staff["id"])).json()["data"]
    await client.post(f"/api/v1/onboarding/{old['id']}/complete", headers=firm_a)
    recent = (await _onboarding(
        client, firm_a, staff["id"], start_date=(today - timedelta(days=80)).isoformat(),
    )).json()["data"]

    history = await client.get(f"/api/v1/onboarding/employee/{staff['id']}", headers=firm_a)
    assert {o["id"] for o in history.json()["data"]} == {old["id"], recent["id"]}
    outsider = await client.get(f"/api/v1/onboarding/employee/{staff['id']}", headers=firm_b)
    assert outsider.status_code == 403

    upcoming = await client.get("/api/v1/onboarding/upcoming-reviews", headers=firm_a)
    body = upcoming.json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == recent["id"]
    assert body["data"][0]["days_remaining"] == 10

    narrow = await client.get("/api/v1/onboarding/upcoming-reviews?days=5", headers=firm_a)
    assert narrow.json()["total"] == 0


async def test_onboarding_stats(client, firm_a, employee):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    first = await employee()
    second = await employee(id_number="2234567890")
    overdue = (await _onboarding(client, firm_a, first["id"], tasks=[
        {"name": "Sign contract", "due_date": yesterday}, {"name": "Laptop"},
    ])).json()["data"]
    await client.post(
        f"/api/v1/onboarding/{overdue['id']}/tasks/{overdue['tasks'][1]['task_id']}/complete",
        headers=firm_a,
    )
    done = (await _onboarding(client, firm_a, second["id"], tasks=[{"name": "Sign contract"}])).json()["data"]
    await client.post(f"/api/v1/onboarding/{done['id']}/complete", headers=firm_a)

    response = await client.get("/api/v1/onboarding/stats", headers=firm_a)
    stats = response.json()["data"]
    assert stats["total"] == 2
    assert stats["by_status"] == {"pending": 1, "completed": 1}
    assert stats["by_probation_status"] == {"active": 2}
    assert stats["average_completion"] == 25
    assert stats["overdue"] == 1
    assert stats["this_month"] == {"started": 2, "completed": 1}
