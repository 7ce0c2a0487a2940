import asyncio
import logging
import os
import time

import httpx

from adapter.graph.client import GraphDirectoryClient
from domain.model.errors import (
    ConfigurationError,
    DirectoryOperationError,
    TransientUnavailableError,
)

logger = logging.getLogger(__name__)

# Suppress per-request httpx logs
logging.getLogger('httpx').setLevel(logging.WARNING)

# Graph connection settings from environment
GRAPH_BASE_URL = os.getenv('GRAPH_BASE_URL', 'https://graph.microsoft.com/v1.0')
GRAPH_AUTHORITY_URL = os.getenv('GRAPH_AUTHORITY_URL', 'https://login.microsoftonline.com')
GRAPH_SCOPE = os.getenv('GRAPH_SCOPE', 'https://graph.microsoft.com/.default')
GRAPH_TENANT_ID = os.getenv('GRAPH_TENANT_ID')
GRAPH_CLIENT_ID = os.getenv('GRAPH_CLIENT_ID')
GRAPH_CLIENT_SECRET = os.getenv('GRAPH_CLIENT_SECRET')
GRAPH_TIMEOUT_SECONDS = float(os.getenv('GRAPH_TIMEOUT_SECONDS', '30'))

# Refresh tokens this many seconds before they expire
TOKEN_REFRESH_MARGIN_SECONDS = 60


class GraphClientProvider:
    """Hands out authenticated Graph clients.

    Token strategy:
    1. Return the cached client-credentials token while it is valid
    2. Refresh it shortly before expiry (one refresh at a time)
    3. All handles share a single connection pool

    Usage:
        provider = GraphClientProvider()
        client = await provider.acquire()
        user = await client.get_user("...")
        await provider.aclose()
    """

    def __init__(
        self,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        authority_url: str | None = None,
        scope: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.tenant_id = tenant_id or GRAPH_TENANT_ID
        self.client_id = client_id or GRAPH_CLIENT_ID
        self.client_secret = client_secret or GRAPH_CLIENT_SECRET
        self.base_url = (base_url or GRAPH_BASE_URL).rstrip('/')
        self.authority_url = (authority_url or GRAPH_AUTHORITY_URL).rstrip('/')
        self.scope = scope or GRAPH_SCOPE

        missing = [
            name for name, value in (
                ('GRAPH_TENANT_ID', self.tenant_id),
                ('GRAPH_CLIENT_ID', self.client_id),
                ('GRAPH_CLIENT_SECRET', self.client_secret),
            ) if not value
        ]
        if missing:
            logger.error("[GRAPH] Missing configuration", extra={"missing": missing})
            raise ConfigurationError(f"Missing Graph configuration: {', '.join(missing)}")

        self._http = http_client or httpx.AsyncClient(timeout=timeout or GRAPH_TIMEOUT_SECONDS)
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def token_url(self) -> str:
        return f"{self.authority_url}/{self.tenant_id}/oauth2/v2.0/token"

    async def acquire(self) -> GraphDirectoryClient:
        token = await self._get_token()
        return GraphDirectoryClient(self._http, self.base_url, token)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _token_valid(self) -> bool:
        return bool(self._token) and time.monotonic() < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS

    async def _get_token(self) -> str:
        if self._token_valid():
            return self._token

        async with self._token_lock:
            if self._token_valid():
                return self._token
            self._token, expires_in = await self._fetch_token()
            self._token_expires_at = time.monotonic() + expires_in
            logger.debug("[GRAPH] Access token refreshed", extra={"expires_in": expires_in})
            return self._token

    async def _fetch_token(self) -> tuple[str, int]:
        data = {
            'grant_type': 'client_credentials',
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'scope': self.scope,
        }
        try:
            response = await self._http.post(self.token_url, data=data)
        except httpx.TransportError as e:
            logger.warning("[GRAPH] Token request failed", extra={"error": str(e), "errorType": type(e).__name__})
            raise TransientUnavailableError(f"Token request failed: {type(e).__name__}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientUnavailableError(f"[{response.status_code}] Token endpoint unavailable")
        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = {}
            reason = body.get('error_description') or body.get('error') or response.text[:200]
            logger.error("[GRAPH] Token request rejected", extra={"status_code": response.status_code})
            raise DirectoryOperationError(reason, status_code=response.status_code, code=body.get('error'))

        payload = response.json()
        return payload['access_token'], int(payload.get('expires_in', 3600))
