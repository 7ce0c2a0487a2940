import logging
import os

from fastapi import Depends, HTTPException

from adapter.graph.connection import GraphClientProvider
from adapter.queue.background_queue import BackgroundTaskQueue
from domain.model.errors import ConfigurationError
from port.directory_client import DirectoryClientProvider
from port.task_queue import TaskQueuePort
from services.user_directory_service import UserDirectoryService

logger = logging.getLogger(__name__)

# Issuer domain used for the email identity of newly created users
NON_CUSTOM_DOMAIN_ENV = 'DIRECTORY_NON_CUSTOM_DOMAIN'
# Issuer domain that email lookups match identities under
VERIFIED_DOMAIN_ENV = 'DIRECTORY_DOMAIN'
REQUIRED_SETTINGS = (NON_CUSTOM_DOMAIN_ENV, VERIFIED_DOMAIN_ENV)
BACKGROUND_WORKERS = int(os.getenv('BACKGROUND_QUEUE_WORKERS', '1'))

task_queue = BackgroundTaskQueue(workers=BACKGROUND_WORKERS)
_provider: GraphClientProvider | None = None


def require_setting(name: str) -> str:
    """Read a required environment variable or raise ConfigurationError."""
    value = os.getenv(name, '').strip()
    if not value:
        logger.error("Required configuration missing", extra={"setting": name})
        raise ConfigurationError(f"{name} environment variable is required")
    return value


def get_directory_provider() -> DirectoryClientProvider:
    """Get the shared Graph client provider, raising 503 if it cannot be configured."""
    global _provider
    if _provider is None:
        try:
            _provider = GraphClientProvider()
        except ConfigurationError as e:
            raise HTTPException(status_code=503, detail=str(e))
    return _provider


async def close_directory_provider() -> None:
    global _provider
    if _provider is not None:
        await _provider.aclose()
        _provider = None


def get_task_queue() -> TaskQueuePort:
    return task_queue


def get_user_directory_service(
    provider: DirectoryClientProvider = Depends(get_directory_provider),
    queue: TaskQueuePort = Depends(get_task_queue),
) -> UserDirectoryService:
    try:
        non_custom_domain = require_setting(NON_CUSTOM_DOMAIN_ENV)
        verified_domain = require_setting(VERIFIED_DOMAIN_ENV)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return UserDirectoryService(
        provider, queue,
        non_custom_domain=non_custom_domain,
        verified_domain=verified_domain,
    )
