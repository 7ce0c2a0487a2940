"""Page domain model — one batch of a cursor-linked collection response."""

from dataclasses import dataclass, field

from domain.model.user import User


@dataclass
class UserPage:
    """A batch of users plus the continuation handle for the next batch."""

    users: list[User] = field(default_factory=list)
    next_link: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not self.next_link
