from dataclasses import dataclass, field
from datetime import datetime

EMAIL_SIGN_IN_TYPE = 'emailAddress'
DISABLE_PASSWORD_EXPIRATION = 'DisablePasswordExpiration'


@dataclass
class ObjectIdentity:
    """Binds a sign-in method to a principal under an issuer domain."""
    sign_in_type: str | None = None
    issuer: str | None = None
    issuer_assigned_id: str | None = None


@dataclass
class PasswordProfile:
    password: str | None = None
    force_change_password_next_sign_in: bool | None = None


@dataclass
class User:
    """Domain model representing a directory principal.

    ``id`` is assigned by the directory and is None until the user has been
    created. Fields left as None are not sent on update.
    """
    id: str | None = None
    display_name: str | None = None
    given_name: str | None = None
    surname: str | None = None
    account_enabled: bool | None = None
    identities: list[ObjectIdentity] = field(default_factory=list)
    mail: str | None = None
    user_principal_name: str | None = None
    job_title: str | None = None
    created_at: datetime | None = None
    password_policies: str | None = None
    password_profile: PasswordProfile | None = None

    def email_identity(self) -> ObjectIdentity | None:
        """Return the email-based identity used as the provisioning key."""
        for identity in self.identities:
            if identity.sign_in_type == EMAIL_SIGN_IN_TYPE:
                return identity
        return None

    @classmethod
    def for_provisioning(
        cls,
        first_name: str,
        last_name: str,
        role: str | None,
        email: str,
        password: str,
        issuer: str,
        force_change_password: bool = False,
    ) -> 'User':
        """Build a new, enabled user with an email identity under ``issuer``."""
        return cls(
            account_enabled=True,
            given_name=first_name,
            surname=last_name,
            display_name=f"{first_name} {last_name}",
            password_profile=PasswordProfile(
                password=password,
                force_change_password_next_sign_in=force_change_password,
            ),
            identities=[
                ObjectIdentity(
                    sign_in_type=EMAIL_SIGN_IN_TYPE,
                    issuer=issuer,
                    issuer_assigned_id=email,
                )
            ],
            job_title=role or None,
            password_policies=DISABLE_PASSWORD_EXPIRATION,
        )
