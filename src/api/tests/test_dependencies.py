"""Unit tests for API dependencies — service wiring and configuration checks.

Tests focus on:
- 503 when an issuer domain or Graph credentials are not configured
- UserDirectoryService receives the provider, queue and issuer domains
- /health reports the background queue state
"""

import os
import unittest
from unittest.mock import MagicMock, patch

from fastapi import HTTPException
from fastapi.testclient import TestClient

from api import dependencies
from api.dependencies import (
    NON_CUSTOM_DOMAIN_ENV,
    VERIFIED_DOMAIN_ENV,
    get_directory_provider,
    get_task_queue,
    get_user_directory_service,
    require_setting,
)
from api.main import app
from adapter.fake.task_queue import FakeTaskQueue
from domain.model.errors import ConfigurationError
from services.user_directory_service import UserDirectoryService


class TestRequireSetting(unittest.TestCase):

    def test_returns_value(self):
        with patch.dict(os.environ, {NON_CUSTOM_DOMAIN_ENV: "contoso.onmicrosoft.com"}):
            self.assertEqual(require_setting(NON_CUSTOM_DOMAIN_ENV), "contoso.onmicrosoft.com")

    def test_blank_value_is_missing(self):
        with patch.dict(os.environ, {NON_CUSTOM_DOMAIN_ENV: "  "}):
            with self.assertRaises(ConfigurationError):
                require_setting(NON_CUSTOM_DOMAIN_ENV)


class TestGetUserDirectoryService(unittest.TestCase):

    ENV = {
        NON_CUSTOM_DOMAIN_ENV: "contoso.onmicrosoft.com",
        VERIFIED_DOMAIN_ENV: "login.contoso.com",
    }

    def test_builds_service_with_issuer_domains(self):
        """Both issuer domains from the environment are passed to the service."""
        provider, queue = MagicMock(), FakeTaskQueue()

        with patch.dict(os.environ, self.ENV):
            service = get_user_directory_service(provider=provider, queue=queue)

        self.assertIsInstance(service, UserDirectoryService)
        self.assertEqual(service._non_custom_domain, "contoso.onmicrosoft.com")
        self.assertEqual(service._verified_domain, "login.contoso.com")
        self.assertIs(service._provider, provider)
        self.assertIs(service._task_queue, queue)

    def test_raises_503_without_issuer_domain(self):
        with patch.dict(os.environ, {**self.ENV, NON_CUSTOM_DOMAIN_ENV: ""}):
            with self.assertRaises(HTTPException) as context:
                get_user_directory_service(provider=MagicMock(), queue=FakeTaskQueue())

        self.assertEqual(context.exception.status_code, 503)

    def test_raises_503_without_verified_domain(self):
        with patch.dict(os.environ, {**self.ENV, VERIFIED_DOMAIN_ENV: ""}):
            with self.assertRaises(HTTPException) as context:
                get_user_directory_service(provider=MagicMock(), queue=FakeTaskQueue())

        self.assertEqual(context.exception.status_code, 503)
        self.assertIn(VERIFIED_DOMAIN_ENV, context.exception.detail)


class TestGetDirectoryProvider(unittest.TestCase):

    def setUp(self):
        dependencies._provider = None

    def tearDown(self):
        dependencies._provider = None

    @patch('api.dependencies.GraphClientProvider')
    def test_provider_is_created_once(self, mock_provider_cls):
        first = get_directory_provider()
        second = get_directory_provider()

        self.assertIs(first, second)
        mock_provider_cls.assert_called_once_with()

    @patch('api.dependencies.GraphClientProvider')
    def test_raises_503_when_graph_not_configured(self, mock_provider_cls):
        mock_provider_cls.side_effect = ConfigurationError("Missing Graph configuration: GRAPH_CLIENT_ID")

        with self.assertRaises(HTTPException) as context:
            get_directory_provider()

        self.assertEqual(context.exception.status_code, 503)
        self.assertIn("GRAPH_CLIENT_ID", context.exception.detail)


class TestHealth(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_healthy_when_queue_running(self):
        queue = MagicMock(running=True, pending=2)
        app.dependency_overrides[get_task_queue] = lambda: queue

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["services"]["background_queue"]["pending"], 2)

    def test_degraded_when_queue_stopped(self):
        queue = MagicMock(running=False, pending=0)
        app.dependency_overrides[get_task_queue] = lambda: queue

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["status"], "degraded")


if __name__ == '__main__':
    unittest.main()
