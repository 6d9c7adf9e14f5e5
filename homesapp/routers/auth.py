"""
Authentication API endpoints for registration, login, token management and the current user.
Tokens are returned in the body and the access token is also set as an HTTP-only session cookie.
"""

from fastapi import APIRouter, Depends, Response, status
from homesapp.models.user import User
from homesapp.services.auth import AuthService
from homesapp.services.user import UserService
from homesapp.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
)
from homesapp.schemas.user import CurrentUserResponse, UserResponse, UserProfileUpdate
from homesapp.schemas.error import get_error_responses, get_auth_error_responses
from homesapp.utils.dependencies import get_auth_service, get_user_service, get_current_active_user
from homesapp.utils.exceptions import APIException, InvalidCredentialsError, InvalidTokenError
from homesapp.config import settings
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


async def current_user_payload(user: User, user_service: UserService) -> CurrentUserResponse:
    permissions = await user_service.get_permissions(user)
    return CurrentUserResponse.model_validate({**user.to_dict(), "permissions": permissions})


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an account",
    description="Create an account in pending status. An administrator must approve it before login.",
    responses=get_error_responses(409, 422)
)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> RegisterResponse:
    user = await auth_service.register(data)
    return RegisterResponse(user=UserResponse.model_validate(user.to_dict()))


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email and password, returns JWT tokens and sets the session cookie",
    responses=get_auth_error_responses()
)
async def login(
    login_data: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    user_service: UserService = Depends(get_user_service)
) -> LoginResponse:
    """
    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If the account is not approved
    """
    try:
        user, access_token, refresh_token = await auth_service.login(
            email=login_data.email,
            password=login_data.password
        )
    except APIException:
        raise
    except Exception as e:
        logger.error(f"Login failed for {login_data.email}: {e}")
        raise InvalidCredentialsError()

    _set_session_cookie(response, access_token)
    return LoginResponse(
        user=await current_user_payload(user, user_service),
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate a new access token using a refresh token",
    responses=get_auth_error_responses()
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    try:
        access_token = await auth_service.refresh_access_token(refresh_token=refresh_data.refresh_token)
    except APIException:
        raise
    except Exception as e:
        logger.error(f"Token refresh failed: {e}")
        raise InvalidTokenError("Failed to refresh token")

    _set_session_cookie(response, access_token)
    return AccessTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="User logout",
    description="Clear the session cookie. Bearer tokens are discarded client-side."
)
async def logout(response: Response) -> None:
    response.delete_cookie(settings.auth_cookie_name)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Current authenticated user with their effective permissions",
    responses=get_auth_error_responses()
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> CurrentUserResponse:
    return await current_user_payload(current_user, user_service)


@router.patch(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own profile",
    responses=get_error_responses(401, 403, 422)
)
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> CurrentUserResponse:
    user = await user_service.update_profile(current_user, data.model_dump(exclude_unset=True, exclude_none=True))
    return await current_user_payload(user, user_service)
