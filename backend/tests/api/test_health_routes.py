"""Health & Auth — liveness check and the bearer-token gate on resource routes."""

from datetime import timedelta

from app.infrastructure.auth_tokens import create_access_token


async def test_liveness_is_public(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["service"] == "lexdesk-api"


async def test_missing_token_is_401(client):
    response = await client.get("/api/v1/bank-accounts")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


async def test_expired_token_is_401(client):
    token = create_access_token("lawyer-1", "firm-a", expires_in=timedelta(seconds=-1))
    response = await client.get(
        "/api/v1/bank-accounts", headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token expired"


async def test_request_validation_is_400(client, firm_a):
    response = await client.post("/api/v1/bank-accounts", json={"currency": "sar"}, headers=firm_a)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
