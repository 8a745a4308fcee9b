"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; returns JWT and sets cookie
  POST /api/v1/auth/logout  -- clears cookie
  GET  /api/v1/auth/me      -- current user info (requires auth)

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, LoginRequest, LoginResponse, UserResponse
from auth.dependencies import get_current_user
from auth.tokens import authenticate_user, create_access_token, set_auth_cookie
from core.config import get_settings
from memdb.models import User
from memdb.store import MemoryDB

logger = logging.getLogger("memdb.api.auth")

router = APIRouter()


def _login_rate_limit() -> str:
    # Evaluated per request, not at import.
    return get_settings().login_rate_limit


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password.

    The same "bad_credentials" error is returned for an unknown username, a
    wrong password and an inactive account so the response does not leak
    which one it was.
    """
    db: MemoryDB = request.app.state.db
    user = authenticate_user(db, body.username, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={
                "error": ErrorDetail(code="bad_credentials", message="Invalid username or password.").model_dump()
            },
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    expires_in = get_settings().token_expire_seconds
    token = create_access_token(user.id, user.username, expire_seconds=expires_in)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 -- OAuth token type, not a password
            expires_in=expires_in,
            user=UserResponse.from_user(user),
        ).model_dump(mode="json"),
    )
    set_auth_cookie(resp, token, expire_seconds=expires_in)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User %d logged in", user.id)
    return resp


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the JWT cookie."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie("access_token")
    return resp


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the currently authenticated user."""
    return UserResponse.from_user(current_user)
