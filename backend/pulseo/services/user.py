"""User store for registered accounts."""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User

logger = logging.getLogger(__name__)


class UniquenessViolation(Exception):
    """A unique constraint on ``users`` rejected an insert."""

    def __init__(self, field: str):
        super().__init__(f"{field} already exists")
        self.field = field


class PublicUser(BaseModel):
    id: str
    username: str
    email: str


class PublicUserWithTimestamp(PublicUser):
    created_at: str


def to_public_user(user: User) -> PublicUser:
    return PublicUser(id=user.id, username=user.username, email=user.email)


def to_public_user_with_timestamp(user: User) -> PublicUserWithTimestamp:
    return PublicUserWithTimestamp(
        id=user.id,
        username=user.username,
        email=user.email,
        created_at=user.created_at.isoformat(),
    )


def _violated_field(error: IntegrityError) -> Optional[str]:
    """Work out which unique constraint fired from the driver message."""
    message = str(error.orig).lower()
    if "unique" not in message:
        return None
    if "users.username" in message or "uq_users_username" in message:
        return "username"
    if "users.email" in message or "uq_users_email" in message:
        return "email"
    return None


class UserStore:
    """Service for reading and creating users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, username: str, email: str, password_hash: str) -> User:
        """
        Create a new user with a lowercased email.

        Raises UniquenessViolation when the username or email is already taken,
        whatever any earlier existence check said.
        """
        user = User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            field = _violated_field(e)
            if field is None:
                raise
            logger.info(f"Unique constraint on users.{field} rejected a registration")
            raise UniquenessViolation(field) from e
        return user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == username.lower())
        )
        return result.scalar_one_or_none()
