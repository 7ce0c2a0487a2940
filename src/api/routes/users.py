"""Directory user API routes.

Endpoints:
- POST /users: Create a user
- GET /users: List every user (all pages)
- GET /users/first: Any single user
- GET /users/by-email: Look a user up by email
- GET /users/{id}: Read a user by id
- PATCH /users/{id}: Partially update a user
- DELETE /users/{id}: Queue deletion of a user (202)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_user_directory_service
from api.models import (
    CreateUserRequest,
    DeleteAcceptedResponse,
    UpdateUserRequest,
    UserResponse,
)
from domain.model.errors import DirectoryError, ErrorKind
from services.user_directory_service import UserDirectoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DIRECTORY_OPERATION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSIENT_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _to_http(e: DirectoryError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(e.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=str(e),
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Create a user with an email sign-in identity."""
    try:
        user = await service.create(
            first_name=request.first_name,
            last_name=request.last_name,
            role=request.role,
            email=request.email,
            password=request.password,
            force_change_password=request.force_change_password,
        )
    except DirectoryError as e:
        raise _to_http(e)
    return UserResponse.from_domain(user)


@router.get("", response_model=list[UserResponse])
async def list_users(service: UserDirectoryService = Depends(get_user_directory_service)):
    """List every user in the directory."""
    try:
        users = await service.get_all()
    except DirectoryError as e:
        raise _to_http(e)
    return [UserResponse.from_domain(u) for u in users]


@router.get("/first", response_model=UserResponse)
async def get_first_user(service: UserDirectoryService = Depends(get_user_directory_service)):
    try:
        user = await service.get_first()
    except DirectoryError as e:
        raise _to_http(e)
    if user is None:
        raise HTTPException(status_code=404, detail="No users in directory")
    return UserResponse.from_domain(user)


@router.get("/by-email", response_model=UserResponse)
async def get_user_by_email(
    email: str = Query(..., description="Mail, principal name or identity email"),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    try:
        user = await service.get_by_email(email)
    except DirectoryError as e:
        raise _to_http(e)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.from_domain(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Read a user by id. Retries while a new user propagates."""
    try:
        user = await service.get(user_id)
    except DirectoryError as e:
        raise _to_http(e)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.from_domain(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    try:
        user = await service.update(request.to_domain(user_id))
    except DirectoryError as e:
        raise _to_http(e)
    logger.info("User updated via API", extra={"userId": user_id})
    return UserResponse.from_domain(user)


@router.delete("/{user_id}", response_model=DeleteAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def delete_user(
    user_id: str,
    skip_validation: bool = Query(False, description="Queue deletion without checking the user exists"),
    service: UserDirectoryService = Depends(get_user_directory_service),
):
    """Queue deletion of a user. The response does not wait for it to finish."""
    try:
        await service.delete(user_id, skip_validation=skip_validation)
    except DirectoryError as e:
        raise _to_http(e)
    return DeleteAcceptedResponse(id=user_id)
