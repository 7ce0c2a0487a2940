"""In-memory implementation of DirectoryClient / DirectoryClientProvider for testing.

Behaves like an eventually-consistent, paged directory: newly created users
can be made invisible to point reads for a number of attempts, collection
reads are split into pages linked by continuation tokens, and failures can
be queued per method. Tokens are single-use, and only the most recent
MAX_OPEN_CURSORS stay valid, like expiring skip tokens.
"""

import copy
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from domain.model.errors import DirectoryOperationError, EntityNotFoundError
from domain.model.filter import FilterExpression
from domain.model.page import UserPage
from domain.model.user import User

NEXT_LINK_PREFIX = 'fake://users?$skiptoken='
# Skip tokens kept open at once; the oldest expires first
MAX_OPEN_CURSORS = 16


class FakeDirectoryClient:
    def __init__(self, page_size: int = 100, visibility_lag: int = 0):
        self.store: dict[str, User] = {}
        self.page_size = page_size
        self.visibility_lag = visibility_lag
        self.calls: list[tuple[str, object]] = []
        self._hidden_reads: dict[str, int] = {}
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self._cursors: dict[str, list[User]] = {}

    # ── test helpers ─────────────────────────────────────────

    def add(self, user: User) -> User:
        """Seed a user, visible immediately. Assigns an id when missing."""
        stored = copy.deepcopy(user)
        stored.id = stored.id or uuid.uuid4().hex
        stored.created_at = stored.created_at or datetime.now(timezone.utc)
        self.store[stored.id] = stored
        return copy.deepcopy(stored)

    def fail(self, method: str, *errors: BaseException) -> None:
        """Make the next calls of ``method`` raise ``errors`` in order."""
        self._failures[method].extend(errors)

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def _enter(self, method: str, arg: object = None) -> None:
        self.calls.append((method, arg))
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    def _page(self, users: list[User], size: int) -> UserPage:
        batch, rest = users[:size], users[size:]
        next_link = None
        if rest:
            token = uuid.uuid4().hex
            self._cursors[token] = rest
            while len(self._cursors) > MAX_OPEN_CURSORS:
                del self._cursors[next(iter(self._cursors))]
            next_link = NEXT_LINK_PREFIX + token
        return UserPage(users=[copy.deepcopy(u) for u in batch], next_link=next_link)

    # ── write operations ─────────────────────────────────────

    async def create_user(self, user: User) -> User:
        self._enter('create_user', user)

        identity = user.email_identity()
        if identity is not None:
            for existing in self.store.values():
                other = existing.email_identity()
                if (
                    other is not None
                    and other.issuer == identity.issuer
                    and (other.issuer_assigned_id or '').casefold() == (identity.issuer_assigned_id or '').casefold()
                ):
                    raise DirectoryOperationError(
                        "Another object with the same value for property identities already exists.",
                        status_code=400,
                        code='Request_BadRequest',
                    )

        stored = copy.deepcopy(user)
        stored.id = uuid.uuid4().hex
        stored.created_at = datetime.now(timezone.utc)
        stored.password_profile = None
        self.store[stored.id] = stored
        if self.visibility_lag:
            self._hidden_reads[stored.id] = self.visibility_lag
        return copy.deepcopy(stored)

    async def update_user(self, user: User) -> User | None:
        self._enter('update_user', user)
        stored = self.store.get(user.id)
        if stored is None:
            raise EntityNotFoundError(f"Resource '{user.id}' does not exist")

        for name, value in vars(user).items():
            if name in ('id', 'created_at') or value is None:
                continue
            if name == 'identities' and not value:
                continue
            setattr(stored, name, copy.deepcopy(value))
        stored.password_profile = None
        return None

    async def delete_user(self, user_id: str) -> None:
        self._enter('delete_user', user_id)
        if self.store.pop(user_id, None) is None:
            raise EntityNotFoundError(f"Resource '{user_id}' does not exist")

    # ── read operations ──────────────────────────────────────

    async def get_user(self, user_id: str, select: list[str] | None = None) -> User:
        self._enter('get_user', user_id)
        hidden = self._hidden_reads.get(user_id, 0)
        if hidden:
            self._hidden_reads[user_id] = hidden - 1
            raise EntityNotFoundError(f"Resource '{user_id}' does not exist")
        user = self.store.get(user_id)
        if user is None:
            raise EntityNotFoundError(f"Resource '{user_id}' does not exist")
        return copy.deepcopy(user)

    async def list_users(
        self,
        select: list[str] | None = None,
        filter: FilterExpression | None = None,
        top: int | None = None,
    ) -> UserPage:
        self._enter('list_users', filter)
        users = [u for u in self.store.values() if filter is None or filter.matches(u)]
        return self._page(users, top or self.page_size)

    async def next_page(self, next_link: str) -> UserPage:
        self._enter('next_page', next_link)
        token = next_link.removeprefix(NEXT_LINK_PREFIX)
        remaining = self._cursors.pop(token, None)
        if remaining is None:
            raise DirectoryOperationError("Invalid or expired skip token", status_code=400)
        return self._page(remaining, self.page_size)


class FakeDirectoryClientProvider:
    def __init__(self, client: FakeDirectoryClient | None = None):
        self.client = client or FakeDirectoryClient()
        self.acquired = 0

    async def acquire(self) -> FakeDirectoryClient:
        self.acquired += 1
        return self.client
