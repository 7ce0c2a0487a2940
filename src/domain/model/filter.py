"""Filter expressions for directory collection queries.

A single definition of a predicate serves two consumers: the Graph adapter
renders it to OData ``$filter`` syntax, and in-memory adapters evaluate it
against ``User`` objects directly.
"""

from dataclasses import dataclass

from domain.model.user import User

# OData property name -> User attribute
_FIELD_ATTRS: dict[str, str] = {
    'id': 'id',
    'mail': 'mail',
    'userPrincipalName': 'user_principal_name',
    'displayName': 'display_name',
    'givenName': 'given_name',
    'surname': 'surname',
    'jobTitle': 'job_title',
}


def odata_literal(value: str) -> str:
    """Quote a string for use in an OData expression."""
    return "'" + value.replace("'", "''") + "'"


def _same(left: str | None, right: str) -> bool:
    # Directory string comparisons are case-insensitive.
    return left is not None and left.casefold() == right.casefold()


@dataclass(frozen=True)
class Eq:
    """``field eq 'value'``."""
    field: str
    value: str

    def __post_init__(self):
        if self.field not in _FIELD_ATTRS:
            raise ValueError(f"Unsupported filter field: {self.field}")

    def to_odata(self) -> str:
        return f"{self.field} eq {odata_literal(self.value)}"

    def matches(self, user: User) -> bool:
        return _same(getattr(user, _FIELD_ATTRS[self.field]), self.value)


@dataclass(frozen=True)
class AnyIdentity:
    """Any external identity whose issuer-assigned id equals ``value``.

    ``issuer`` narrows the match to a single issuer domain when given.
    """
    value: str
    issuer: str | None = None

    def to_odata(self) -> str:
        clause = f"c/issuerAssignedId eq {odata_literal(self.value)}"
        if self.issuer:
            clause += f" and c/issuer eq {odata_literal(self.issuer)}"
        return f"identities/any(c:{clause})"

    def matches(self, user: User) -> bool:
        for identity in user.identities:
            if not _same(identity.issuer_assigned_id, self.value):
                continue
            if self.issuer and not _same(identity.issuer, self.issuer):
                continue
            return True
        return False


class Or:
    """Disjunction of filter terms."""

    def __init__(self, *terms):
        if not terms:
            raise ValueError("Or() requires at least one term")
        self.terms = terms

    def __eq__(self, other):
        return isinstance(other, Or) and self.terms == other.terms

    def __repr__(self):
        return f"Or{self.terms!r}"

    def to_odata(self) -> str:
        if len(self.terms) == 1:
            return self.terms[0].to_odata()
        return " or ".join(f"({term.to_odata()})" for term in self.terms)

    def matches(self, user: User) -> bool:
        return any(term.matches(user) for term in self.terms)


FilterExpression = Eq | AnyIdentity | Or


def email_lookup_filter(email: str, issuer: str) -> Or:
    """Match a principal by mail, principal name or an identity's email.

    Provisioning may have populated any of these depending on the account's
    history, so all three are checked. Graph only accepts an
    ``issuerAssignedId`` condition together with ``issuer``.
    """
    return Or(
        Eq('mail', email),
        Eq('userPrincipalName', email),
        AnyIdentity(email, issuer=issuer),
    )
