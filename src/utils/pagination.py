"""Cursor-based page walking for directory collection responses."""

import logging
from typing import AsyncIterator, Awaitable, Callable

from domain.model.page import UserPage
from domain.model.user import User

logger = logging.getLogger(__name__)

FetchNext = Callable[[str], Awaitable[UserPage]]


async def iterate_pages(first_page: UserPage, fetch_next: FetchNext) -> AsyncIterator[UserPage]:
    """Yield ``first_page`` and every page reachable through its next links.

    Page fetch errors are not retried here and end the iteration.
    """
    page = first_page
    yield page
    while not page.is_terminal:
        page = await fetch_next(page.next_link)
        yield page


async def collect_pages(first_page: UserPage, fetch_next: FetchNext) -> list[User]:
    """Drain every page into one list, in page order then within-page order.

    The whole result set is held in memory. If any page fetch fails the
    error propagates and no partial list is returned.
    """
    users: list[User] = []
    page_count = 0
    async for page in iterate_pages(first_page, fetch_next):
        users.extend(page.users)
        page_count += 1
    logger.debug("Drained paged collection", extra={"pages": page_count, "count": len(users)})
    return users
