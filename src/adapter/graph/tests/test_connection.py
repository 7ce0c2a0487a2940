"""Tests for GraphClientProvider token handling."""

import unittest
from unittest.mock import patch

import httpx

from adapter.graph import connection
from adapter.graph.client import GraphDirectoryClient
from adapter.graph.connection import GraphClientProvider
from domain.model.errors import ConfigurationError, DirectoryOperationError, TransientUnavailableError


class TestGraphClientProvider(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.token_requests: list[httpx.Request] = []
        self.token_responses: list[httpx.Response] = []

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(request)
        return self.token_responses.pop(0)

    def _provider(self) -> GraphClientProvider:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self._handler))
        return GraphClientProvider(
            tenant_id="tenant-1",
            client_id="client-1",
            client_secret="secret",
            authority_url="https://login.test",
            http_client=http,
        )

    async def test_token_is_fetched_once_and_cached(self):
        self.token_responses.append(httpx.Response(200, json={"access_token": "t-1", "expires_in": 3600}))
        provider = self._provider()

        first = await provider.acquire()
        second = await provider.acquire()

        self.assertIsInstance(first, GraphDirectoryClient)
        self.assertIsNot(first, second)
        self.assertEqual(len(self.token_requests), 1)
        request = self.token_requests[0]
        self.assertEqual(str(request.url), "https://login.test/tenant-1/oauth2/v2.0/token")
        self.assertIn(b"grant_type=client_credentials", request.content)
        await provider.aclose()

    async def test_token_near_expiry_is_refreshed(self):
        # Shorter than the refresh margin, so every acquire refreshes
        self.token_responses.extend([
            httpx.Response(200, json={"access_token": "t-1", "expires_in": 30}),
            httpx.Response(200, json={"access_token": "t-2", "expires_in": 3600}),
        ])
        provider = self._provider()

        await provider.acquire()
        await provider.acquire()

        self.assertEqual(len(self.token_requests), 2)
        self.assertEqual(provider._token, "t-2")
        await provider.aclose()

    async def test_rejected_credentials(self):
        self.token_responses.append(
            httpx.Response(401, json={"error": "invalid_client", "error_description": "Bad secret"})
        )
        provider = self._provider()

        with self.assertRaises(DirectoryOperationError) as ctx:
            await provider.acquire()

        self.assertEqual(ctx.exception.reason, "Bad secret")
        self.assertEqual(ctx.exception.code, "invalid_client")
        await provider.aclose()

    async def test_token_endpoint_outage_is_transient(self):
        self.token_responses.append(httpx.Response(503))
        provider = self._provider()

        with self.assertRaises(TransientUnavailableError):
            await provider.acquire()
        await provider.aclose()

    def test_missing_credentials(self):
        with patch.object(connection, 'GRAPH_TENANT_ID', None), \
                patch.object(connection, 'GRAPH_CLIENT_ID', None), \
                patch.object(connection, 'GRAPH_CLIENT_SECRET', None):
            with self.assertRaises(ConfigurationError) as ctx:
                GraphClientProvider()

        self.assertIn("GRAPH_TENANT_ID", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
