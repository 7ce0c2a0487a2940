"""User directory service — user lifecycle against an eventually-consistent directory.

Pure orchestration with no HTTP dependencies. Reads by id are retried with
backoff to ride out replication lag after a write; bulk reads walk the
directory's paged responses; deletions are handed to a deferred task queue
so callers do not wait on them.

Raises domain errors that route handlers map to HTTP status codes.
"""

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable

from domain.model.errors import (
    DirectoryOperationError,
    EntityNotFoundError,
    InvalidArgumentError,
)
from domain.model.filter import email_lookup_filter
from domain.model.user import User
from port.directory_client import DirectoryClientProvider
from port.task_queue import TaskQueuePort
from utils.backoff import DEFAULT_BACKOFF, BackoffPolicy
from utils.pagination import collect_pages
from utils.retry import DEFAULT_MAX_ATTEMPTS, execute_with_retry

logger = logging.getLogger(__name__)

# Fields requested on every read
USER_SELECT_FIELDS = [
    "id",
    "displayName",
    "createdDateTime",
    "identities",
    "jobTitle",
    "givenName",
    "surname",
    "mail",
    "userPrincipalName",
]


def _require(**values: str | None) -> None:
    for name, value in values.items():
        if value is None or not str(value).strip():
            raise InvalidArgumentError(f"{name} must not be empty")


class UserDirectoryService:
    """Create, read, update and delete directory users.

    The service keeps no state of its own. The provider and queue are
    shared collaborators whose lifetimes are managed by the caller.
    """

    def __init__(
        self,
        provider: DirectoryClientProvider,
        task_queue: TaskQueuePort,
        non_custom_domain: str,
        verified_domain: str,
        retry_policy: BackoffPolicy = DEFAULT_BACKOFF,
        max_get_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        _require(non_custom_domain=non_custom_domain, verified_domain=verified_domain)
        self._provider = provider
        self._task_queue = task_queue
        # Issuer of identities created here
        self._non_custom_domain = non_custom_domain
        # Issuer that email lookups match identities under
        self._verified_domain = verified_domain
        self._retry_policy = retry_policy
        self._max_get_attempts = max_get_attempts
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        first_name: str,
        last_name: str,
        role: str | None,
        email: str,
        password: str,
        force_change_password: bool = False,
    ) -> User:
        """Create an enabled user whose email identity is ``email``.

        Returns the created user. When the directory only acknowledges the
        creation with an id, the user is re-read (with retries) so that the
        caller always gets a full record.

        Raises:
            InvalidArgumentError: a required value is empty (no directory call)
            DirectoryOperationError: the directory rejected the user
        """
        _require(first_name=first_name, last_name=last_name, email=email, password=password)

        log_extra = {"operation": "create", "email": email}
        logger.debug("Creating user", extra=log_extra)

        user = User.for_provisioning(
            first_name=first_name,
            last_name=last_name,
            role=role,
            email=email,
            password=password,
            issuer=self._non_custom_domain,
            force_change_password=force_change_password,
        )

        try:
            client = await self._provider.acquire()
            created = await client.create_user(user)
        except DirectoryOperationError as e:
            logger.error("Could not create directory user", extra={**log_extra, "reason": e.reason}, exc_info=True)
            raise
        except Exception as e:
            logger.error("Could not create directory user", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise

        if not created.id:
            logger.error("Directory returned no id for created user", extra=log_extra)
            raise DirectoryOperationError(f"User ID not returned after creation: {email}")

        logger.info("Created user", extra={**log_extra, "userId": created.id})

        if created.email_identity() is not None:
            return created

        fetched = await self.get(created.id)
        if fetched is None:
            raise DirectoryOperationError(f"Unable to retrieve user after creation: {email}")
        return fetched

    async def update(self, user: User) -> User:
        """Patch the populated fields of ``user`` and return the updated record.

        When the directory acknowledges the patch without a body, the user
        is re-read (with retries) so the result carries every field.

        Raises:
            InvalidArgumentError: ``user.id`` is not set (no directory call)
            DirectoryOperationError: the directory rejected the update, or
                the updated user could not be read back
        """
        if not user.id:
            raise InvalidArgumentError("User ID must be populated to perform update")

        log_extra = {"operation": "update", "userId": user.id}
        logger.debug("Updating user", extra=log_extra)

        try:
            client = await self._provider.acquire()
            updated = await client.update_user(user)
        except DirectoryOperationError as e:
            logger.error("Failed to update user", extra={**log_extra, "reason": e.reason}, exc_info=True)
            raise
        except Exception as e:
            logger.error("Unexpected error updating user", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise

        if updated is not None:
            logger.debug("Updated user", extra=log_extra)
            return updated

        # No body in the response (204); read the full record back
        fetched = await self.get(user.id)
        if fetched is None:
            logger.error("Updated user could not be read back", extra=log_extra)
            raise DirectoryOperationError(f"Unable to retrieve user after update: {user.id}")
        logger.debug("Updated user", extra=log_extra)
        return fetched

    async def delete(
        self,
        user_id: str,
        skip_validation: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Queue deletion of a user and return without waiting for it.

        Unless ``skip_validation`` is set the user must be readable first.

        Raises:
            InvalidArgumentError: ``user_id`` is empty
            EntityNotFoundError: validation requested and the user is absent;
                nothing is queued in that case
        """
        _require(user_id=user_id)
        log_extra = {"operation": "delete", "userId": user_id}

        if not skip_validation:
            existing = await self.get(user_id)
            if existing is None:
                logger.warning("User does not exist, not deleting", extra=log_extra)
                raise EntityNotFoundError(f"User ({user_id}) does not exist, cannot delete")

        logger.info("Queueing user deletion", extra=log_extra)
        self._task_queue.submit(partial(self._delete_now, user_id), cancel_event)

    async def _delete_now(self, user_id: str) -> None:
        log_extra = {"operation": "delete", "userId": user_id}
        try:
            client = await self._provider.acquire()
            await client.delete_user(user_id)
        except Exception as e:
            logger.error("Failed to delete user", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise
        logger.info("Deleted user", extra=log_extra)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, user_id: str) -> User | None:
        """Read a user by id, retrying while the directory catches up.

        Returns None once retries are exhausted. A user that is not visible
        yet and one that does not exist look the same to the caller.
        Cancellation is never turned into None.
        """
        _require(user_id=user_id)
        log_extra = {"operation": "get", "userId": user_id}

        async def _attempt() -> User:
            logger.debug("Retrieving user", extra=log_extra)
            client = await self._provider.acquire()
            return await client.get_user(user_id, select=USER_SELECT_FIELDS)

        try:
            user = await execute_with_retry(
                _attempt,
                policy=self._retry_policy,
                max_attempts=self._max_get_attempts,
                operation_name="get",
                log_extra={"userId": user_id},
                sleep=self._sleep,
            )
        except Exception as e:
            logger.error(
                "Final error, could not retrieve user",
                extra={**log_extra, "error": str(e), "errorType": type(e).__name__},
                exc_info=True,
            )
            return None

        logger.debug("Retrieved user", extra=log_extra)
        return user

    async def get_all(self) -> list[User]:
        """Read every user, following the directory's continuation links."""
        log_extra = {"operation": "get_all"}
        logger.debug("Retrieving all users", extra=log_extra)

        try:
            client = await self._provider.acquire()
            first_page = await client.list_users(select=USER_SELECT_FIELDS)
            users = await collect_pages(first_page, client.next_page)
        except Exception as e:
            logger.error("Failed to retrieve all users", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise

        logger.debug("Retrieved all users", extra={**log_extra, "count": len(users)})
        return users

    async def get_first(self) -> User | None:
        """Read a single user, or None when the directory holds none."""
        log_extra = {"operation": "get_first"}
        logger.debug("Retrieving first user", extra=log_extra)

        try:
            client = await self._provider.acquire()
            page = await client.list_users(select=USER_SELECT_FIELDS, top=1)
        except Exception as e:
            logger.error("Failed to retrieve first user", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise

        if not page.users:
            logger.warning("There are no users in the directory", extra=log_extra)
            return None
        return page.users[0]

    async def get_by_email(self, email: str) -> User | None:
        """Find a user whose mail, principal name or verified-domain identity equals ``email``."""
        _require(email=email)
        log_extra = {"operation": "get_by_email", "email": email}
        logger.debug("Retrieving user by email", extra=log_extra)

        try:
            client = await self._provider.acquire()
            page = await client.list_users(
                select=USER_SELECT_FIELDS,
                filter=email_lookup_filter(email, issuer=self._verified_domain),
                top=1,
            )
        except Exception as e:
            logger.error("Failed to look up user by email", extra={**log_extra, "error": str(e)}, exc_info=True)
            raise

        if not page.users:
            logger.warning("Could not find user", extra=log_extra)
            return None
        return page.users[0]
