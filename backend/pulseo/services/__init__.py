"""Services for Pulseo."""

from .auth import AuthService, AuthSession, RefreshOutcome, RefreshResult
from .column import ColumnService
from .password import PasswordHasher
from .refresh_token import RefreshTokenStore
from .task import TaskService
from .tokens import AccessTokenPayload, TokenService, hash_token
from .user import UniquenessViolation, UserStore

__all__ = [
    "AuthService",
    "AuthSession",
    "RefreshOutcome",
    "RefreshResult",
    "ColumnService",
    "PasswordHasher",
    "RefreshTokenStore",
    "TaskService",
    "AccessTokenPayload",
    "TokenService",
    "hash_token",
    "UniquenessViolation",
    "UserStore",
]
