"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from domain.model.user import ObjectIdentity, User


class IdentityModel(BaseModel):
    """External identity of a user."""
    sign_in_type: Optional[str] = None
    issuer: Optional[str] = None
    issuer_assigned_id: Optional[str] = None


class UserResponse(BaseModel):
    """Response model for a directory user."""
    id: str = Field(..., description="Directory-assigned user ID")
    display_name: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    account_enabled: Optional[bool] = None
    identities: list[IdentityModel] = Field(default_factory=list)
    mail: Optional[str] = None
    user_principal_name: Optional[str] = None
    job_title: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.id,
            display_name=user.display_name,
            given_name=user.given_name,
            surname=user.surname,
            account_enabled=user.account_enabled,
            identities=[
                IdentityModel(
                    sign_in_type=i.sign_in_type,
                    issuer=i.issuer,
                    issuer_assigned_id=i.issuer_assigned_id,
                )
                for i in user.identities
            ],
            mail=user.mail,
            user_principal_name=user.user_principal_name,
            job_title=user.job_title,
            created_at=user.created_at,
        )


class CreateUserRequest(BaseModel):
    """Request model for creating a user.

    Emptiness is checked by the service so that every caller gets the same
    InvalidArgument behaviour.
    """
    first_name: str
    last_name: str
    email: str
    password: str
    role: Optional[str] = Field(None, description="Stored as the user's job title")
    force_change_password: bool = False


class UpdateUserRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    display_name: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    account_enabled: Optional[bool] = None
    mail: Optional[str] = None
    job_title: Optional[str] = None
    identities: Optional[list[IdentityModel]] = None

    def to_domain(self, user_id: str) -> User:
        return User(
            id=user_id,
            display_name=self.display_name,
            given_name=self.given_name,
            surname=self.surname,
            account_enabled=self.account_enabled,
            mail=self.mail,
            job_title=self.job_title,
            identities=[
                ObjectIdentity(
                    sign_in_type=i.sign_in_type,
                    issuer=i.issuer,
                    issuer_assigned_id=i.issuer_assigned_id,
                )
                for i in self.identities or []
            ],
        )


class DeleteAcceptedResponse(BaseModel):
    """Deletion was queued; it completes asynchronously."""
    id: str
    status: str = "queued"
