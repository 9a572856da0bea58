"""Integrations — third-party OAuth authorization-code flow and stored connections.

Invariants:
    - Providers come only from settings.integration_providers (unknown -> 404)
    - State is a signed short-lived JWT bound to caller and provider; mismatch -> 400
    - Connections are per user (lawyer_id) and unique per provider; reconnect updates in place
    - Tokens are stored but never returned
"""

import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant
from app.config import get_settings
from app.core.boundary_protocols import OAuthClient
from app.core.errors import ResourceNotFoundError
from app.core.tenant import TenantContext
from app.infrastructure.auth_tokens import create_state_token, verify_state_token
from app.infrastructure.database import get_db
from app.infrastructure.oauth_client import get_oauth_client
from app.models.integration_connection import IntegrationConnection
from app.schemas.common import dump, dump_all
from app.schemas.integrations import ConnectionResponse, OAuthCallback
from app.services.activity_log import log_activity
from app.services.scoping import stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/integrations", tags=["integrations"])


def _provider_config(provider: str) -> dict:
    config = get_settings().integration_providers.get(provider)
    if not config:
        raise ResourceNotFoundError("Integration provider", provider)
    return config


def _redirect_uri(provider: str) -> str:
    return f"{get_settings().integration_redirect_base_url.rstrip('/')}/{provider}/callback"


async def _connection(
    db: AsyncSession, tenant: TenantContext, provider: str,
) -> IntegrationConnection | None:
    result = await db.execute(
        select(IntegrationConnection).where(
            IntegrationConnection.lawyer_id == tenant.user_id,
            IntegrationConnection.provider == provider,
        ),
    )
    return result.scalar_one_or_none()


@router.get("/providers")
async def list_providers(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(IntegrationConnection.provider, IntegrationConnection.status).where(
            IntegrationConnection.lawyer_id == tenant.user_id,
        ),
    )
    connected = {p: s for p, s in result.all()}
    return {
        "data": [
            {
                "provider": name,
                "scopes": list(config.get("scopes") or []),
                "connected": connected.get(name) == "connected",
            }
            for name, config in sorted(get_settings().integration_providers.items())
        ],
    }


@router.get("/connections")
async def list_connections(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(IntegrationConnection)
        .where(IntegrationConnection.lawyer_id == tenant.user_id)
        .order_by(IntegrationConnection.provider),
    )
    return {"data": dump_all(ConnectionResponse, result.scalars().all())}


@router.get("/{provider}/authorize")
async def authorize_provider(
    provider: str,
    tenant: TenantContext = Depends(get_tenant),
):
    config = _provider_config(provider)
    state = create_state_token(tenant, provider)
    url = httpx.URL(
        config["authorize_url"],
        params={
            "client_id": config.get("client_id", ""),
            "redirect_uri": _redirect_uri(provider),
            "response_type": "code",
            "scope": " ".join(config.get("scopes") or []),
            "state": state,
        },
    )
    return {"data": {"authorization_url": str(url), "state": state}}


@router.post("/{provider}/callback")
async def oauth_callback(
    provider: str,
    body: OAuthCallback,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    config = _provider_config(provider)
    verify_state_token(body.state, tenant, provider)
    tokens = await oauth.exchange_code(provider, config, body.code, _redirect_uri(provider))

    now = datetime.now(timezone.utc)
    connection = await _connection(db, tenant, provider)
    if connection is None:
        connection = IntegrationConnection(**stamp_tenant(tenant), provider=provider)
        db.add(connection)
    connection.status = "connected"
    connection.access_token = tokens.access_token
    connection.refresh_token = tokens.refresh_token
    connection.expires_at = tokens.expires_at
    connection.scopes = list(tokens.scopes)
    connection.external_account_id = tokens.external_account_id
    connection.connected_at = now
    await db.flush()
    log_activity(db, tenant, "integration_connected", "integration", connection.id, {"provider": provider})
    await db.commit()
    logger.info(f"Integration connected: {provider}", extra=tenant.log_extra())
    return {"message": f"Connected to {provider}", "data": dump(ConnectionResponse, connection)}


@router.delete("/{provider}")
async def disconnect_provider(
    provider: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    connection = await _connection(db, tenant, provider)
    if connection is None:
        raise ResourceNotFoundError("Integration connection", provider)
    log_activity(db, tenant, "integration_disconnected", "integration", connection.id, {"provider": provider})
    await db.delete(connection)
    await db.commit()
    return {"message": f"Disconnected from {provider}"}
