"""Authentication API routes."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Unauthorized, ValidationFailed, error_body, success_response
from ..models.database import get_db
from ..services.auth import AuthService, AuthSession, RefreshOutcome, RefreshResult
from ..services.password import PasswordHasher
from ..services.tokens import AccessTokenPayload, TokenService
from ..services.user import to_public_user, to_public_user_with_timestamp

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "pulseo_access"
REFRESH_COOKIE = "pulseo_refresh"
REFRESH_COOKIE_PATH = "/api/auth"

REFRESH_FAILURES = {
    RefreshOutcome.MISSING: ("INVALID_REFRESH_TOKEN", "Refresh token is missing"),
    RefreshOutcome.NOT_FOUND: ("INVALID_REFRESH_TOKEN", "Invalid refresh token"),
    RefreshOutcome.EXPIRED: ("INVALID_REFRESH_TOKEN", "Refresh token has expired"),
    RefreshOutcome.USER_MISSING: ("INVALID_REFRESH_TOKEN", "User not found"),
    RefreshOutcome.REUSE_DETECTED: (
        "TOKEN_REUSE_DETECTED",
        "Potential token theft detected. All sessions have been revoked.",
    ),
}


router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    # Types are checked by the registration validators so that each
    # failure maps to its field-specific error code.
    username: Any = None
    email: Any = None
    password: Any = None


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(db, tokens, hasher)


async def get_token_payload(
    access_token: Optional[str] = Cookie(None, alias=ACCESS_COOKIE),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[AccessTokenPayload]:
    """Decode the access-token cookie if present. Never rejects the request."""
    if not access_token:
        return None
    return tokens.verify_access_token(access_token)


async def get_current_user_id(
    payload: Optional[AccessTokenPayload] = Depends(get_token_payload),
) -> str:
    """Dependency for routes that require a signed-in user."""
    if payload is None:
        raise Unauthorized()
    return payload.sub


def _secure_cookies(request: Request) -> bool:
    return request.app.state.config.is_production


def set_auth_cookies(
    response: Response, session: AuthSession, tokens: TokenService, secure: bool
) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=session.access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        path="/",
        max_age=tokens.access_ttl,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=session.refresh_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        path=REFRESH_COOKIE_PATH,
        max_age=tokens.refresh_ttl,
    )


def clear_auth_cookies(response: Response, secure: bool) -> None:
    response.delete_cookie(
        key=ACCESS_COOKIE, path="/", secure=secure, httponly=True, samesite="lax"
    )
    response.delete_cookie(
        key=REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,
        secure=secure,
        httponly=True,
        samesite="lax",
    )


def _refresh_failure(result: RefreshResult, secure: bool) -> JSONResponse:
    code, message = REFRESH_FAILURES[result.outcome]
    response = JSONResponse(status_code=401, content=error_body(code, message))
    if result.clears_cookies:
        clear_auth_cookies(response, secure)
    return response


@router.post("/register", status_code=201)
async def register(
    request: Request,
    response: Response,
    body: Optional[RegisterRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a new account and start a session."""
    if body is None:
        raise ValidationFailed("Request body is required")

    session = await auth_service.register(body.username, body.email, body.password)
    set_auth_cookies(response, session, auth_service.tokens, _secure_cookies(request))
    return success_response({"user": to_public_user(session.user).model_dump()})


@router.post("/login")
async def login(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Authenticate with email and password and start a session."""
    # Any malformed body, unparseable JSON included, is reported exactly
    # like a wrong password
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    session = await auth_service.login(body.get("email"), body.get("password"))
    set_auth_cookies(response, session, auth_service.tokens, _secure_cookies(request))
    return success_response({"user": to_public_user(session.user).model_dump()})


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    access_token: Optional[str] = Cookie(None, alias=ACCESS_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new access/refresh pair."""
    secure = _secure_cookies(request)
    result = await auth_service.refresh(refresh_token, access_token)

    if result.outcome is not RefreshOutcome.ROTATED:
        return _refresh_failure(result, secure)

    set_auth_cookies(response, result.session, auth_service.tokens, secure)
    return success_response({"user": to_public_user(result.session.user).model_dump()})


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log out the current session. Always succeeds."""
    await auth_service.logout(refresh_token)
    clear_auth_cookies(response, _secure_cookies(request))
    return success_response(None)


@router.get("/me")
async def get_me(
    payload: Optional[AccessTokenPayload] = Depends(get_token_payload),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get the current authenticated user."""
    user = await auth_service.me(payload)
    return success_response({"user": to_public_user_with_timestamp(user).model_dump()})
