"""Integrations — provider catalogue, authorize URL, state-checked callback with a fake OAuth client."""

from urllib.parse import parse_qs, urlparse

import pytest

from app.config import get_settings
from app.core.boundary_protocols import TokenSet
from app.infrastructure.oauth_client import get_oauth_client
from app.main import app

PROVIDERS = {
    "google": {
        "client_id": "google-client",
        "client_secret": "google-secret",
        "authorize_url": "https://accounts.example.com/o/oauth2/auth",
        "token_url": "https://oauth2.example.com/token",
        "scopes": ["calendar.readonly", "email"],
    },
}


class FakeOAuthClient:
    def __init__(self):
        self.calls = []

    async def exchange_code(self, provider, provider_config, code, redirect_uri):
        self.calls.append((provider, code, redirect_uri))
        return TokenSet(
            access_token="access-123", refresh_token="refresh-456",
            scopes=("email",), external_account_id="acct-1",
        )


@pytest.fixture
def oauth(monkeypatch):
    monkeypatch.setattr(get_settings(), "integration_providers", PROVIDERS)
    fake = FakeOAuthClient()
    app.dependency_overrides[get_oauth_client] = lambda: fake
    return fake


async def _authorize(client, headers):
    response = await client.get("/api/v1/integrations/google/authorize", headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


async def test_unknown_provider_404(client, firm_a, oauth):
    response = await client.get("/api/v1/integrations/dropbox/authorize", headers=firm_a)
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Integration provider not found"


async def test_authorize_url_carries_state(client, firm_a, oauth):
    data = await _authorize(client, firm_a)
    query = parse_qs(urlparse(data["authorization_url"]).query)
    assert query["client_id"] == ["google-client"]
    assert query["state"] == [data["state"]]
    assert query["scope"] == ["calendar.readonly email"]
    assert query["redirect_uri"][0].endswith("/google/callback")


async def test_callback_stores_connection_without_leaking_tokens(client, firm_a, oauth):
    state = (await _authorize(client, firm_a))["state"]
    response = await client.post(
        "/api/v1/integrations/google/callback",
        json={"code": "auth-code", "state": state}, headers=firm_a,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["provider"] == "google"
    assert data["status"] == "connected"
    assert "access_token" not in data
    assert oauth.calls[0][:2] == ("google", "auth-code")

    providers = await client.get("/api/v1/integrations/providers", headers=firm_a)
    assert providers.json()["data"] == [
        {"provider": "google", "scopes": ["calendar.readonly", "email"], "connected": True},
    ]


async def test_state_from_another_user_rejected(client, firm_a, firm_a_colleague, oauth):
    state = (await _authorize(client, firm_a))["state"]
    response = await client.post(
        "/api/v1/integrations/google/callback",
        json={"code": "auth-code", "state": state}, headers=firm_a_colleague,
    )
    assert response.status_code == 400
    assert oauth.calls == []


async def test_disconnect(client, firm_a, oauth):
    missing = await client.delete("/api/v1/integrations/google", headers=firm_a)
    assert missing.status_code == 404

    state = (await _authorize(client, firm_a))["state"]
    await client.post(
        "/api/v1/integrations/google/callback",
        json={"code": "auth-code", "state": state}, headers=firm_a,
    )
    removed = await client.delete("/api/v1/integrations/google", headers=firm_a)
    assert removed.status_code == 200

    connections = await client.get("/api/v1/integrations/connections", headers=firm_a)
    assert connections.json()["data"] == []
