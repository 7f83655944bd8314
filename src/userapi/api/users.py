"""User CRUD endpoints.

Thin HTTP layer over UserService: request validation happens in the
pydantic models, domain errors map to status codes here.
"""

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Response

from userapi.api.deps import get_user_service
from userapi.users.models import UserRequest, UserResponse
from userapi.users.repository import UserNotFoundError
from userapi.users.service import EmailTakenError

if TYPE_CHECKING:
    from userapi.users.service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _check_id(user_id: int) -> None:
    if user_id <= 0:
        raise HTTPException(status_code=400, detail="Invalid user ID")


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserRequest,
    service: "UserService" = Depends(get_user_service),
) -> UserResponse:
    """Create a new user with name and email."""
    try:
        user = service.create_user(body.name, body.email)
    except EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    service: "UserService" = Depends(get_user_service),
) -> UserResponse:
    """Get user details by id."""
    _check_id(user_id)
    try:
        user = service.get_user(user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.from_user(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserRequest,
    service: "UserService" = Depends(get_user_service),
) -> UserResponse:
    """Replace a user's name and email."""
    _check_id(user_id)
    try:
        user = service.update_user(user_id, body.name, body.email)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return UserResponse.from_user(user)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    service: "UserService" = Depends(get_user_service),
) -> Response:
    """Soft-delete a user."""
    _check_id(user_id)
    try:
        service.delete_user(user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return Response(status_code=204)
