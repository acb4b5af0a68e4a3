import logging
import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..circuit_breaker import commit
from ..deps import get_password_hash, verify_password
from ..errors import BadRequestError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: uuid.UUID) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def email_exists(db: Session, email: str) -> bool:
    return get_user_by_email(db, email) is not None


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.created_at).all()


def list_users_by_role(db: Session, role: models.Role) -> List[models.User]:
    return db.query(models.User).filter(models.User.role == role).order_by(models.User.created_at).all()


def register(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    role: Optional[models.Role] = None,
) -> models.User:
    if email_exists(db, email):
        raise BadRequestError("Email already exists")

    user = models.User(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        role=role or models.Role.USER,
    )
    db.add(user)
    commit(db)
    db.refresh(user)
    logger.info("Registered user %s as %s", user.id, user.role.value)
    return user


def authenticate(db: Session, email: str, password: str) -> models.User:
    """Return the user for valid credentials; unknown e-mail and wrong password fail alike."""
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", email)
        raise UnauthorizedError("Invalid email or password")
    return user


def update_profile(
    db: Session,
    user_id: uuid.UUID,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
) -> models.User:
    user = get_user(db, user_id)

    if email is not None and email != user.email:
        if email_exists(db, email):
            raise BadRequestError("Email already exists")
        user.email = email

    if full_name is not None:
        user.full_name = full_name

    commit(db)
    db.refresh(user)
    return user


def change_password(
    db: Session,
    user_id: uuid.UUID,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> None:
    user = get_user(db, user_id)

    if not verify_password(current_password, user.hashed_password):
        raise BadRequestError("Current password is incorrect")
    if new_password != confirm_password:
        raise BadRequestError("New password and confirmation do not match")

    user.hashed_password = get_password_hash(new_password)
    commit(db)
    logger.info("User %s changed their password", user.id)


def upgrade_to_host(db: Session, user_id: uuid.UUID) -> models.User:
    user = get_user(db, user_id)

    if not models.can_change_role(user.role, models.Role.HOST):
        if user.role == models.Role.HOST:
            raise BadRequestError("User is already a host")
        raise BadRequestError("Cannot change admin role")

    user.role = models.Role.HOST
    commit(db)
    db.refresh(user)
    logger.info("User %s upgraded to host", user.id)
    return user


def delete_user(db: Session, user_id: uuid.UUID) -> None:
    """
    Hard-delete an account. Accounts that still have bookings or own
    locations are refused so no booking or location is left without an owner.
    """
    user = get_user(db, user_id)

    has_bookings = db.query(models.Booking.id).filter(models.Booking.user_id == user.id).first() is not None
    has_locations = db.query(models.Location.id).filter(models.Location.host_id == user.id).first() is not None
    if has_bookings or has_locations:
        raise BadRequestError("User has existing bookings or locations and cannot be deleted")

    db.delete(user)
    commit(db)
    logger.info("Deleted user %s", user_id)


def search_users(db: Session, query: str) -> List[models.User]:
    """Users whose full name contains ``query`` (any case), plus an exact e-mail match."""
    users = (
        db.query(models.User)
        .filter(func.lower(models.User.full_name).contains(query.lower(), autoescape=True))
        .order_by(models.User.full_name)
        .all()
    )
    by_email = get_user_by_email(db, query)
    if by_email is not None and by_email not in users:
        users.append(by_email)
    return users
