"""
Authentication endpoints: login and session profile.
"""

import logging

from fastapi import APIRouter, Depends

from writer_studio.api.dependencies import ServiceContainer, get_current_user, get_services
from writer_studio.models.dtos import LoginRequest, LoginResponse, ProfileResponse, UserProfile

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    services: ServiceContainer = Depends(get_services),
) -> LoginResponse:
    """
    Exchange a username and password for a session token.

    Args:
        request: Username and password.
        services: Service container.

    Returns:
        LoginResponse: The session token with the account's username and role.

    Raises:
        BadRequestError: If either field is missing.
        UnauthorizedError: If the credentials do not match an account.
    """
    return await services.verifier.login(request.username, request.password)


@router.get("/profile", response_model=ProfileResponse)
async def profile(user: UserProfile = Depends(get_current_user)) -> ProfileResponse:
    """Return the account behind the bearer token."""
    return ProfileResponse(user=user)
