"""Graph user JSON <-> User domain model."""

from datetime import datetime
from typing import Any

from domain.model.user import ObjectIdentity, PasswordProfile, User


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    # Graph returns UTC timestamps with a trailing Z
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def identity_from_dict(data: dict[str, Any]) -> ObjectIdentity:
    return ObjectIdentity(
        sign_in_type=data.get('signInType'),
        issuer=data.get('issuer'),
        issuer_assigned_id=data.get('issuerAssignedId'),
    )


def user_from_dict(data: dict[str, Any]) -> User:
    """Convert a Graph user resource to a User domain object."""
    return User(
        id=data.get('id'),
        display_name=data.get('displayName'),
        given_name=data.get('givenName'),
        surname=data.get('surname'),
        account_enabled=data.get('accountEnabled'),
        identities=[identity_from_dict(i) for i in data.get('identities') or []],
        mail=data.get('mail'),
        user_principal_name=data.get('userPrincipalName'),
        job_title=data.get('jobTitle'),
        created_at=_parse_datetime(data.get('createdDateTime')),
        password_policies=data.get('passwordPolicies'),
    )


def user_to_payload(user: User) -> dict[str, Any]:
    """Convert a User to a Graph request body.

    Unset fields are omitted so the same payload serves creation and
    partial updates. Read-only fields (id, creation time) are never sent.
    """
    payload = {
        'displayName': user.display_name,
        'givenName': user.given_name,
        'surname': user.surname,
        'accountEnabled': user.account_enabled,
        'mail': user.mail,
        'userPrincipalName': user.user_principal_name,
        'jobTitle': user.job_title,
        'passwordPolicies': user.password_policies,
    }
    if user.identities:
        payload['identities'] = [
            _drop_none({
                'signInType': i.sign_in_type,
                'issuer': i.issuer,
                'issuerAssignedId': i.issuer_assigned_id,
            })
            for i in user.identities
        ]
    if user.password_profile is not None:
        payload['passwordProfile'] = _drop_none({
            'password': user.password_profile.password,
            'forceChangePasswordNextSignIn': user.password_profile.force_change_password_next_sign_in,
        })
    return _drop_none(payload)
