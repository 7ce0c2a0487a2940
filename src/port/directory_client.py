"""Directory client port — outbound interface to the identity directory."""

from typing import Protocol

from domain.model.filter import FilterExpression
from domain.model.page import UserPage
from domain.model.user import User


class DirectoryClient(Protocol):
    """Authenticated handle to the directory's user collection.

    Errors are reported with the domain taxonomy:
    EntityNotFoundError for unknown ids, DirectoryOperationError when the
    directory rejects a request, TransientUnavailableError for network
    failures, throttling and outages.
    """

    async def create_user(self, user: User) -> User:
        """Create a user and return what the directory sent back.

        The result carries at least the assigned id; directories that do not
        return a full representation may leave the other fields empty.
        """
        ...

    async def get_user(self, user_id: str, select: list[str] | None = None) -> User: ...

    async def list_users(
        self,
        select: list[str] | None = None,
        filter: FilterExpression | None = None,
        top: int | None = None,
    ) -> UserPage: ...

    async def next_page(self, next_link: str) -> UserPage: ...

    async def update_user(self, user: User) -> User | None:
        """Patch the populated fields of ``user``. Returns the updated
        representation, or None when the directory returns no body."""
        ...

    async def delete_user(self, user_id: str) -> None: ...


class DirectoryClientProvider(Protocol):
    """Yields authenticated directory client handles."""

    async def acquire(self) -> DirectoryClient: ...
