"""Persistence for refresh-token hashes."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import utcnow
from ..models.refresh_token import RefreshToken


class RefreshTokenStore:
    """Stores refresh-token digests keyed by user, with expiry and revocation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def store(
        self, token_id: str, user_id: str, token_hash: str, expires_at: datetime
    ) -> RefreshToken:
        row = RefreshToken(
            id=token_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
        )
        self.db.add(row)
        await self.db.flush()
        return row

    async def find_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        )
        return result.scalars().first()

    async def delete_by_id(self, token_id: str) -> bool:
        """
        Delete one token. Returns False when the row was already gone.

        Rotation relies on this: of two requests presenting the same token,
        only the one whose delete removed the row may continue.
        """
        result = await self.db.execute(
            delete(RefreshToken).where(RefreshToken.id == token_id)
        )
        return result.rowcount > 0

    async def delete_by_hash(self, token_hash: str) -> int:
        result = await self.db.execute(
            delete(RefreshToken).where(RefreshToken.token_hash == token_hash)
        )
        return result.rowcount

    async def delete_all_for_user(self, user_id: str) -> int:
        result = await self.db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id)
        )
        return result.rowcount

    async def purge_expired(self) -> int:
        result = await self.db.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= utcnow())
        )
        return result.rowcount

    @staticmethod
    def is_expired(expires_at: datetime) -> bool:
        return expires_at <= utcnow()
