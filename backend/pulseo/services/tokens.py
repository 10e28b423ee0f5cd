"""Access and refresh token issuance."""

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from ..models.database import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_MAX_AGE = 3600  # 1 hour
REFRESH_TOKEN_MAX_AGE = 30 * 24 * 3600  # 30 days
REFRESH_TOKEN_BYTES = 48


@dataclass(frozen=True)
class AccessTokenPayload:
    """Decoded claims of a valid access token."""

    sub: str
    username: str
    email: str
    iat: int
    exp: int


@dataclass(frozen=True)
class IssuedRefreshToken:
    """A freshly generated refresh token. Only ``hash`` is ever persisted."""

    token: str
    hash: str
    id: str
    expires_at: datetime


def hash_token(token: str) -> str:
    """One-way digest used both when storing and when looking up a refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    """Signs short-lived access tokens and generates opaque refresh tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: int = ACCESS_TOKEN_MAX_AGE,
        refresh_ttl: int = REFRESH_TOKEN_MAX_AGE,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def create_access_token(self, user) -> str:
        """Create a signed access token for a user (anything with id/username/email)."""
        now = int(datetime.now(timezone.utc).timestamp())
        claims = {
            "sub": user.id,
            "username": user.username,
            "email": user.email,
            "iat": now,
            "exp": now + self.access_ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """Decode and validate an access token. Returns None on any failure."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return AccessTokenPayload(
                sub=str(claims["sub"]),
                username=str(claims["username"]),
                email=str(claims["email"]),
                iat=int(claims["iat"]),
                exp=int(claims["exp"]),
            )
        except (JWTError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Rejected access token: {e}")
            return None

    def generate_refresh_token(self) -> IssuedRefreshToken:
        token = secrets.token_hex(REFRESH_TOKEN_BYTES)
        return IssuedRefreshToken(
            token=token,
            hash=hash_token(token),
            id=str(uuid.uuid4()),
            expires_at=utcnow() + timedelta(seconds=self.refresh_ttl),
        )
