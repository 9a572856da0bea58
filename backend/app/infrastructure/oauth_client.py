"""OAuth Client — authorization-code exchange against a provider's token endpoint.

Invariants:
    - Implements core.boundary_protocols.OAuthClient
    - Network/HTTP/payload failures raise ExternalServiceError (502), never leak tokens in logs

Design Decisions:
    - httpx.AsyncClient per call: exchanges are rare, no pooled client lifecycle to manage
"""

import logging
from datetime import datetime, timedelta, timezone

import httpx

from app.config import get_settings
from app.core.boundary_protocols import TokenSet
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class HttpxOAuthClient:
    def __init__(self, timeout_seconds: float = 15.0):
        self._timeout = timeout_seconds

    async def exchange_code(
        self, provider: str, provider_config: dict, code: str, redirect_uri: str,
    ) -> TokenSet:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": provider_config.get("client_id", ""),
            "client_secret": provider_config.get("client_secret", ""),
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    provider_config["token_url"], data=data,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Token exchange rejected: HTTP {e.response.status_code}",
                extra={"provider": provider},
            )
            raise ExternalServiceError(provider, "authorization code rejected")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token exchange failed: {type(e).__name__}", extra={"provider": provider})
            raise ExternalServiceError(provider, "token exchange failed")

        if "access_token" not in payload:
            raise ExternalServiceError(provider, "response missing access_token")
        expires_in = payload.get("expires_in")
        return TokenSet(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=(
                datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
                if expires_in else None
            ),
            scopes=tuple((payload.get("scope") or "").split()),
            external_account_id=payload.get("account_id") or payload.get("user_id"),
        )


def get_oauth_client() -> HttpxOAuthClient:
    """FastAPI dependency; override in tests."""
    return HttpxOAuthClient(get_settings().integration_timeout_seconds)
