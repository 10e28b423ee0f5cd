"""Authentication session protocol: register, login, refresh, logout, me."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ApiError, Conflict, Unauthorized, ValidationFailed
from ..models.user import User
from .password import PasswordHasher
from .refresh_token import RefreshTokenStore
from .tokens import AccessTokenPayload, TokenService, hash_token
from .user import UniquenessViolation, UserStore
from .validation import classify_registration, is_login_input_valid

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"

TAKEN_ERRORS = {
    "username": ("USERNAME_TAKEN", "Username is already taken"),
    "email": ("EMAIL_TAKEN", "Email is already registered"),
}


class RefreshOutcome(str, Enum):
    ROTATED = "rotated"
    MISSING = "missing"
    NOT_FOUND = "not_found"
    REUSE_DETECTED = "reuse_detected"
    EXPIRED = "expired"
    USER_MISSING = "user_missing"


@dataclass
class AuthSession:
    """A user together with a freshly issued token pair."""

    user: User
    access_token: str
    refresh_token: str


@dataclass
class RefreshResult:
    outcome: RefreshOutcome
    session: Optional[AuthSession] = None

    @property
    def clears_cookies(self) -> bool:
        return self.outcome in (
            RefreshOutcome.REUSE_DETECTED,
            RefreshOutcome.EXPIRED,
            RefreshOutcome.USER_MISSING,
        )


class AuthService:
    """
    Orchestrates the token-based session lifecycle.

    Session state lives in two client-held tokens plus one stored refresh
    digest per active session. Refresh tokens are single use: every refresh
    deletes the presented token and issues a new pair, and presenting an
    already rotated token while still holding a valid access token revokes
    every session of that user.
    """

    def __init__(
        self,
        db: AsyncSession,
        tokens: TokenService,
        hasher: PasswordHasher,
    ):
        self.db = db
        self.tokens = tokens
        self.hasher = hasher
        self.users = UserStore(db)
        self.refresh_tokens = RefreshTokenStore(db)

    async def _issue_session(self, user: User) -> AuthSession:
        access_token = self.tokens.create_access_token(user)
        issued = self.tokens.generate_refresh_token()
        await self.refresh_tokens.store(issued.id, user.id, issued.hash, issued.expires_at)
        return AuthSession(user=user, access_token=access_token, refresh_token=issued.token)

    async def register(self, username: Any, email: Any, password: Any) -> AuthSession:
        failure = classify_registration(username, email, password)
        if failure is not None:
            code, message = failure
            raise ValidationFailed(message, code=code)

        # Pre-checks only give nicer errors; the unique constraints decide.
        if await self.users.find_by_username(username) is not None:
            raise Conflict(*TAKEN_ERRORS["username"])
        if await self.users.find_by_email(email) is not None:
            raise Conflict(*TAKEN_ERRORS["email"])

        password_hash = await asyncio.to_thread(self.hasher.hash, password)

        try:
            user = await self.users.create(username, email, password_hash)
        except UniquenessViolation as e:
            raise Conflict(*TAKEN_ERRORS[e.field])
        except IntegrityError as e:
            logger.error(f"Registration failed: {e}", exc_info=True)
            raise ApiError(500, "REGISTRATION_FAILED", "Registration failed")

        session = await self._issue_session(user)
        logger.info(f"Registered user {user.username} ({user.id})")
        return session

    async def login(self, email: Any, password: Any) -> AuthSession:
        if not is_login_input_valid(email, password):
            raise Unauthorized("INVALID_CREDENTIALS", INVALID_CREDENTIALS_MESSAGE)

        user = await self.users.find_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email")
            raise Unauthorized("INVALID_CREDENTIALS", INVALID_CREDENTIALS_MESSAGE)

        matches = await asyncio.to_thread(self.hasher.verify, user.password_hash, password)
        if not matches:
            logger.info(f"Login failed: wrong password for user {user.id}")
            raise Unauthorized("INVALID_CREDENTIALS", INVALID_CREDENTIALS_MESSAGE)

        session = await self._issue_session(user)
        logger.info(f"Login: {user.username} ({user.id})")
        return session

    async def refresh(
        self, refresh_token: Optional[str], access_token: Optional[str] = None
    ) -> RefreshResult:
        """
        Rotate a refresh token.

        Deleting the presented row is the serialisation point: if the delete
        removes nothing, another request already rotated it and this one is
        handled exactly like an unknown token.
        """
        if not refresh_token:
            return RefreshResult(RefreshOutcome.MISSING)

        stored = await self.refresh_tokens.find_by_hash(hash_token(refresh_token))
        if stored is None:
            return await self._unknown_refresh_token(access_token)

        if self.refresh_tokens.is_expired(stored.expires_at):
            await self.refresh_tokens.delete_by_id(stored.id)
            await self.db.commit()
            return RefreshResult(RefreshOutcome.EXPIRED)

        user_id = stored.user_id
        if not await self.refresh_tokens.delete_by_id(stored.id):
            return await self._unknown_refresh_token(access_token)

        user = await self.users.find_by_id(user_id)
        if user is None:
            await self.db.commit()
            return RefreshResult(RefreshOutcome.USER_MISSING)

        session = await self._issue_session(user)
        logger.debug(f"Rotated refresh token for user {user.id}")
        return RefreshResult(RefreshOutcome.ROTATED, session=session)

    async def _unknown_refresh_token(self, access_token: Optional[str]) -> RefreshResult:
        payload = self.tokens.verify_access_token(access_token) if access_token else None
        if payload is None:
            return RefreshResult(RefreshOutcome.NOT_FOUND)

        revoked = await self.refresh_tokens.delete_all_for_user(payload.sub)
        await self.db.commit()
        logger.warning(
            f"Refresh token reuse detected for user {payload.sub}; "
            f"revoked {revoked} refresh tokens"
        )
        return RefreshResult(RefreshOutcome.REUSE_DETECTED)

    async def logout(self, refresh_token: Optional[str]) -> None:
        if refresh_token:
            await self.refresh_tokens.delete_by_hash(hash_token(refresh_token))

    async def me(self, payload: Optional[AccessTokenPayload]) -> User:
        if payload is None:
            raise Unauthorized()

        user = await self.users.find_by_id(payload.sub)
        if user is None:
            raise Unauthorized(message="User not found")
        return user
