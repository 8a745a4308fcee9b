"""
api/routes/v1/users.py -- User routes for the REST API.

Routes:
  POST   /users              -- register a user (public)
  GET    /users              -- list all users
  GET    /users/{user_id}    -- user detail
  PATCH  /users/{user_id}    -- partial update
  DELETE /users/{user_id}    -- remove a user

Uniqueness:
  MemoryDB performs no uniqueness checks on username or email. The checks
  happen here, and the check-then-write sequence runs under _identity_lock so
  two concurrent registrations for the same username cannot both pass the
  check. Handlers are sync, so FastAPI runs them on its worker threadpool and
  a threading.Lock is the right primitive.

Authorization:
  Registration is public. Every other route needs a valid token, and any
  authenticated user may update or delete any other user. There is no role
  or ownership check.
"""

from __future__ import annotations

import logging
import threading

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.limiter import limiter
from api.models import ErrorDetail, UserCreate, UserResponse, UserUpdate
from auth.dependencies import get_current_user
from auth.tokens import hash_password
from memdb.models import User
from memdb.store import MemoryDB

logger = logging.getLogger("memdb.api.users")

# Auth policy:
# - POST   /api/v1/users:         public -- self-registration
# - GET    /api/v1/users:         requires auth
# - GET    /api/v1/users/{id}:    requires auth
# - PATCH  /api/v1/users/{id}:    requires auth
# - DELETE /api/v1/users/{id}:    requires auth
# Any authenticated user may update or delete any user, the admin included.
# There are no roles.
router = APIRouter()

# Serializes username/email uniqueness checks with the write that follows.
_identity_lock = threading.Lock()


def _not_found(user_id: int) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="user_not_found", message=f"User {user_id} not found.").model_dump(),
    )


def _email_taken() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=ErrorDetail(code="email_taken", message="Email is already registered.").model_dump(),
    )


# ---------------------------------------------------------------------------
# POST /users -- register
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
@limiter.limit("30/minute")
def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Register a new user. Username and email must be unused."""
    db: MemoryDB = request.app.state.db
    hashed = hash_password(body.password) if body.password else None

    with _identity_lock:
        if db.get_user_by_username(body.username) is not None:
            raise HTTPException(
                status_code=409,
                detail=ErrorDetail(code="username_taken", message="Username is already taken.").model_dump(),
            )
        if db.get_user_by_email(body.email) is not None:
            raise _email_taken()
        user = db.create_user(
            User(
                username=body.username,
                email=body.email,
                full_name=body.full_name,
                hashed_password=hashed,
                is_active=True,
            )
        )

    logger.info("User %d created (%s)", user.id, user.username)
    return UserResponse.from_user(user)


# ---------------------------------------------------------------------------
# GET /users -- list
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
@limiter.limit("60/minute")
def list_users(request: Request, current_user: User = Depends(get_current_user)) -> list[UserResponse]:
    """Return every user, ordered by id. No pagination."""
    db: MemoryDB = request.app.state.db
    users = sorted(db.list_users(), key=lambda u: u.id)
    return [UserResponse.from_user(u) for u in users]


# ---------------------------------------------------------------------------
# GET /users/{user_id}
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}", response_model=UserResponse)
@limiter.limit("60/minute")
def get_user(request: Request, user_id: int, current_user: User = Depends(get_current_user)) -> UserResponse:
    db: MemoryDB = request.app.state.db
    user = db.get_user(user_id)
    if user is None:
        raise _not_found(user_id)
    return UserResponse.from_user(user)


# ---------------------------------------------------------------------------
# PATCH /users/{user_id}
# ---------------------------------------------------------------------------


@router.patch("/users/{user_id}", response_model=UserResponse)
@limiter.limit("30/minute")
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Update email, full_name, is_active and/or password. Omitted fields are unchanged."""
    db: MemoryDB = request.app.state.db
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    password = changes.pop("password", None)
    if password is not None:
        changes["hashed_password"] = hash_password(password)

    with _identity_lock:
        existing = db.get_user(user_id)
        if existing is None:
            raise _not_found(user_id)
        new_email = changes.get("email")
        if new_email is not None:
            owner = db.get_user_by_email(new_email)
            if owner is not None and owner.id != user_id:
                raise _email_taken()
        updated = db.update_user(user_id, **changes) if changes else existing

    if updated is None:
        # Deleted by a concurrent request between the check and the write.
        raise _not_found(user_id)
    logger.info("User %d updated (%s)", user_id, ", ".join(sorted(changes)) or "no changes")
    return UserResponse.from_user(updated)


# ---------------------------------------------------------------------------
# DELETE /users/{user_id}
# ---------------------------------------------------------------------------


@router.delete("/users/{user_id}", status_code=204)
@limiter.limit("30/minute")
def delete_user(request: Request, user_id: int, current_user: User = Depends(get_current_user)) -> Response:
    """Remove a user. The id is never reassigned."""
    db: MemoryDB = request.app.state.db
    if not db.delete_user(user_id):
        raise _not_found(user_id)
    logger.info("User %d deleted by user %d", user_id, current_user.id)
    return Response(status_code=204)
