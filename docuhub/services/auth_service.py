"""Authentication service: user CRUD and password hashing.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. The service layer owns user lifecycle; endpoints
are thin wrappers.
"""

import logging
import uuid
from typing import Optional

from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, NotFoundError, ValidationError, AuthenticationError
from ..models.user import User

logger = logging.getLogger(__name__)

ROLES = ("admin", "editor", "viewer")
MIN_PASSWORD_LENGTH = 8
# Hex chars kept from a UUID4.
USER_ID_LENGTH = 8


def register_user(
    db: Session,
    email: str,
    password: str,
    display_name: str,
    role: str = "editor",
) -> User:
    """Create a new user account.

    The first user registered is automatically promoted to admin.

    Raises ValidationError for invalid input, ConflictError if the email is taken.
    """
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password")
    if not display_name.strip():
        raise ValidationError("Display name required", field="display_name")
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}", field="role")

    existing = db.query(User).filter(User.email == email).first()
    if existing is not None:
        raise ConflictError("Email already registered", details={"field": "email"})

    # FOR UPDATE so two concurrent first registrations cannot both become admin.
    user_count = (
        db.query(User)
        .filter(User.email.isnot(None))
        .with_for_update()
        .count()
    )
    is_first_user = user_count == 0

    user = User(
        user_id=str(uuid.uuid4())[:USER_ID_LENGTH],
        display_name=display_name.strip(),
        email=email,
        password_hash=bcrypt.hash(password),
        role="admin" if is_first_user else role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    if is_first_user:
        logger.info("First user registered as admin: %s", user.user_id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on invalid email, wrong password, or inactive account.
    """
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()

    if user is None or user.password_hash is None:
        raise AuthenticationError("Invalid email or password")

    if not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return user


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def _get_user(db: Session, user_id: str) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def has_users(db: Session) -> bool:
    return db.query(User.user_id).filter(User.email.isnot(None)).first() is not None


def list_users(db: Session) -> list[User]:
    return db.query(User).filter(User.email.isnot(None)).order_by(User.created_at).all()


def update_user_role(db: Session, user_id: str, new_role: str) -> User:
    """Change a user's global role."""
    if new_role not in ROLES:
        raise ValidationError(f"Invalid role: {new_role}. Must be admin, editor, or viewer.", field="role")

    user = _get_user(db, user_id)
    user.role = new_role
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: str) -> User:
    user = _get_user(db, user_id)
    user.is_active = False
    db.commit()
    db.refresh(user)
    return user
