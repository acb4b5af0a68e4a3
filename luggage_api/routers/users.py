import uuid
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..assembly import user_out
from ..config import AUTH_RATE_LIMIT
from ..deps import create_access_token, get_current_user, get_db, require_roles
from ..errors import ForbiddenError, NotFoundError
from ..rate_limit import limiter
from ..services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


def _require_self(user_id: uuid.UUID, current_user: models.User, allow_admin: bool = False) -> None:
    if current_user.id == user_id:
        return
    if allow_admin and current_user.role == models.Role.ADMIN:
        return
    raise ForbiddenError("Not allowed to act on another user's account")


def _login_response(user: models.User, message: str) -> schemas.LoginResponse:
    return schemas.LoginResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        message=message,
        access_token=create_access_token(user),
    )


@router.post("/register", response_model=schemas.LoginResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
def register_user(request: Request, user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new account and return a bearer token for it.

    Self-registration may pick the ``USER`` (default) or ``HOST`` role.

    Raises
    ------
    HTTPException
        - 400 if the e-mail is already registered or the payload is invalid.
    """
    user = user_service.register(
        db,
        email=user_in.email,
        password=user_in.password,
        full_name=user_in.full_name,
        role=user_in.role,
    )
    return _login_response(user, "User registered successfully")


@router.post("/login", response_model=schemas.LoginResponse, tags=["auth"])
@limiter.limit(AUTH_RATE_LIMIT)
def login_for_access_token(request: Request, credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate with e-mail and password and return a JWT access token.

    Raises
    ------
    HTTPException
        - 401 if the e-mail is unknown or the password is wrong.
    """
    user = user_service.authenticate(db, credentials.email, credentials.password)
    return _login_response(user, "Login successful")


@router.get("/check-email", response_model=schemas.EmailExists)
def check_email(email: str, db: Session = Depends(get_db)):
    """Tell whether an e-mail is already registered (used by sign-up forms)."""
    return {"exists": user_service.email_exists(db, email)}


@router.get("/me", response_model=schemas.UserOut)
def read_current_user(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return user_out(db, current_user)


@router.get("/", response_model=List[schemas.UserOut])
def list_users(
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles(models.Role.ADMIN)),
):
    """List all registered users. *(Admin-only)*"""
    return [user_out(db, user) for user in user_service.list_users(db)]


@router.get("/role/{role}", response_model=List[schemas.UserOut])
def list_users_by_role(
    role: models.Role,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles(models.Role.ADMIN)),
):
    """List users holding a given role. *(Admin-only)*"""
    return [user_out(db, user) for user in user_service.list_users_by_role(db, role)]


@router.get("/search", response_model=List[schemas.UserOut])
def search_users(
    q: str,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles(models.Role.ADMIN)),
):
    """
    Search users by name or e-mail. *(Admin-only)*

    Matches any user whose full name contains ``q`` (case-insensitive) plus the
    user whose e-mail is exactly ``q``.
    """
    return [user_out(db, user) for user in user_service.search_users(db, q)]


@router.get("/by-email", response_model=schemas.UserOut)
def get_user_by_email(
    email: str,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles(models.Role.ADMIN)),
):
    """Get a user by e-mail. *(Admin-only)*"""
    user = user_service.get_user_by_email(db, email)
    if not user:
        raise NotFoundError("User not found")
    return user_out(db, user)


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Get a user's profile. Users may read their own; admins may read any."""
    _require_self(user_id, current_user, allow_admin=True)
    return user_out(db, user_service.get_user(db, user_id))


@router.put("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: uuid.UUID,
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Update the e-mail and/or full name of your own account.

    Raises
    ------
    HTTPException
        - 403 when updating someone else's account.
        - 400 if the new e-mail is already taken.
    """
    _require_self(user_id, current_user)
    user = user_service.update_profile(
        db,
        user_id,
        email=user_update.email,
        full_name=user_update.full_name,
    )
    return user_out(db, user)


@router.put("/{user_id}/password")
def change_password(
    user_id: uuid.UUID,
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Change your own password.

    Raises
    ------
    HTTPException
        - 400 if the current password is wrong or the confirmation differs.
    """
    _require_self(user_id, current_user)
    user_service.change_password(
        db,
        user_id,
        current_password=payload.current_password,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
    )
    return {"detail": "Password changed successfully"}


@router.patch("/{user_id}/upgrade-to-host", response_model=schemas.UserOut)
def upgrade_to_host(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Turn your own USER account into a HOST account.

    Raises
    ------
    HTTPException
        - 400 if the account is already a host or is an admin.
    """
    _require_self(user_id, current_user)
    return user_out(db, user_service.upgrade_to_host(db, user_id))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Delete an account. Users may delete their own; admins may delete any.

    Raises
    ------
    HTTPException
        - 400 while the account still has bookings or owns locations.
        - 404 if the user does not exist.
    """
    _require_self(user_id, current_user, allow_admin=True)
    user_service.delete_user(db, user_id)
