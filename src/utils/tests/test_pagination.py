"""Tests for cursor-based page collection."""

import unittest

from domain.model.errors import TransientUnavailableError
from domain.model.page import UserPage
from domain.model.user import User
from utils.pagination import collect_pages, iterate_pages


def _users(*ids: str) -> list[User]:
    return [User(id=i) for i in ids]


class PagedSource:
    """Serves pages keyed by continuation link; can fail on a given link."""

    def __init__(self, pages: dict[str, UserPage], fail_on: str | None = None):
        self.pages = pages
        self.fail_on = fail_on
        self.requested: list[str] = []

    async def fetch_next(self, link: str) -> UserPage:
        self.requested.append(link)
        if link == self.fail_on:
            raise TransientUnavailableError("page fetch failed")
        return self.pages[link]


class TestCollectPages(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.first = UserPage(users=_users("a", "b"), next_link="p2")
        self.pages = {
            "p2": UserPage(users=_users("c", "d"), next_link="p3"),
            "p3": UserPage(users=_users("e")),
        }

    async def test_three_pages_preserve_order(self):
        source = PagedSource(self.pages)

        users = await collect_pages(self.first, source.fetch_next)

        self.assertEqual([u.id for u in users], ["a", "b", "c", "d", "e"])
        self.assertEqual(source.requested, ["p2", "p3"])

    async def test_single_terminal_page(self):
        source = PagedSource({})

        users = await collect_pages(UserPage(users=_users("x")), source.fetch_next)

        self.assertEqual([u.id for u in users], ["x"])
        self.assertEqual(source.requested, [])

    async def test_empty_first_page(self):
        users = await collect_pages(UserPage(), PagedSource({}).fetch_next)
        self.assertEqual(users, [])

    async def test_failure_on_second_page_propagates(self):
        source = PagedSource(self.pages, fail_on="p2")

        with self.assertRaises(TransientUnavailableError):
            await collect_pages(self.first, source.fetch_next)

        # Not retried
        self.assertEqual(source.requested, ["p2"])

    async def test_iterate_pages_yields_each_page(self):
        source = PagedSource(self.pages)

        sizes = [len(page.users) async for page in iterate_pages(self.first, source.fetch_next)]

        self.assertEqual(sizes, [2, 2, 1])


if __name__ == '__main__':
    unittest.main()
