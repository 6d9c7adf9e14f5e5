"""
Authentication service for registration, login and token management.
"""

from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.user import UserRepository
from homesapp.models.user import User, UserStatus, SELF_REGISTRATION_ROLES
from homesapp.schemas.auth import RegisterRequest
from homesapp.utils.auth import create_access_token, create_refresh_token, verify_token
from homesapp.utils.exceptions import (
    APIException,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    NotFoundError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
)
from jose import JWTError, ExpiredSignatureError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for managing user authentication and tokens.
    Only approved accounts can obtain tokens.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def register(self, data: RegisterRequest) -> User:
        """
        Register a new account in pending status.

        Raises:
            DuplicateResourceError: If the email is already registered
            ValidationError: If the role cannot be self-assigned or the data is invalid
        """
        try:
            if data.role not in SELF_REGISTRATION_ROLES:
                raise ValidationError(f"Role {data.role.value} cannot be self-assigned")

            if await self.user_repo.get_by_email(data.email):
                raise DuplicateResourceError("User", data.email)

            user = await self.user_repo.create_user({
                "email": data.email,
                "password": data.password,
                "first_name": data.first_name,
                "last_name": data.last_name,
                "phone": data.phone,
                "role": data.role,
                "status": UserStatus.PENDING,
            })
            logger.info(f"User registered and awaiting approval: {user.email}")
            return user

        except APIException:
            raise
        except ValueError as e:
            raise ValidationError(str(e))
        except Exception as e:
            logger.error(f"Failed to register user {data.email}: {e}")
            raise BadRequestError(f"Failed to register user: {str(e)}")

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid
            InactiveUserError: If the account is not approved
            ValidationError: If input is missing
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        if not password:
            raise ValidationError("Password is required")

        try:
            user = await self.user_repo.authenticate_user(email, password)
        except Exception as e:
            logger.error(f"Authentication error for {email}: {e}")
            raise InvalidCredentialsError()

        if not user:
            logger.warning(f"Failed authentication attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(f"Login refused for {email}: account status is {user.status.value}")
            raise InactiveUserError(f"User account is {user.status.value}")

        logger.info(f"User authenticated successfully: {user.email}")
        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        """
        Create access and refresh tokens for user.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role)
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = self.create_tokens(user)
        return user, access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Create new access token from refresh token.

        Raises:
            InvalidTokenError: If refresh token is invalid
            TokenExpiredError: If refresh token is expired
            InactiveUserError: If user account is no longer approved
        """
        user = await self._user_from_token(refresh_token, "refresh")
        return create_access_token(user_id=user.id, email=user.email, role=user.role)

    async def get_current_user(self, token: str) -> User:
        """
        Get current user from access token.

        Raises:
            InvalidTokenError: If token is invalid or the user no longer exists
            TokenExpiredError: If token is expired
            InactiveUserError: If user account is not approved
        """
        return await self._user_from_token(token, "access")

    async def _user_from_token(self, token: str, token_type: str) -> User:
        try:
            token_payload = verify_token(token, token_type=token_type)
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            raise InvalidTokenError(str(e))

        try:
            user = await self.get_user_by_id(uuid.UUID(token_payload.user_id))
        except (NotFoundError, ValueError):
            raise InvalidTokenError("Token subject no longer exists")

        if not user.is_active:
            raise InactiveUserError()

        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError: If user not found
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

