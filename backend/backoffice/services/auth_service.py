# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every stock movement must be attributable to a staff member. Uses
bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)

ACTOR CONTEXT:
Routes turn the authenticated user into an Actor and pass it explicitly to
services. Services never read request globals.
"""

import re
from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_MANAGER, ROLE_OWNER
from ..time_utils import utcnow


MANAGER_ROLES = {ROLE_OWNER, ROLE_MANAGER}


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


@dataclass(frozen=True)
class Actor:
    """The staff member performing an operation."""
    user_id: int
    role: str
    name: str | None = None

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role, name=user.name)


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash verifies as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    name: str,
    username: str,
    password: str,
    role: str,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: unknown role, blank name/username, weak password
        ConflictError: username already taken
    """
    name = (name or "").strip()
    username = (username or "").strip()
    if not name:
        raise ValidationError("name is required")
    if not username:
        raise ValidationError("username is required")
    if role not in ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(sorted(ROLES))}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError(f"Username '{username}' already exists")

    password_hash = hash_password(password)

    user = User(
        name=name,
        username=username,
        password_hash=password_hash,
        role=role,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid and the account is active, None otherwise.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_active_user(user_id: int) -> User | None:
    return db.session.query(User).filter_by(id=user_id, is_active=True).first()
