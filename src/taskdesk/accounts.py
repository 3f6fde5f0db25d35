"""
User registration, lookup and authentication.

Registration checks uniqueness with an existence query before inserting. Two
concurrent registrations of the same username can both pass that check; the
store's uniqueness constraint then rejects the second insert, which surfaces
as ConflictError just like the pre-check would.
"""
from __future__ import annotations

import logging

from .errors import ConflictError, InputValidationError, NotFoundError
from .models import Principal, UserEntity
from .repositories import UserRepository
from .security import PasswordHasher, verify_credentials

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


# PUBLIC_INTERFACE
def validate_registration(username: str, password: str) -> None:
    """
    Apply the registration input policy. Callers run this before
    UserAccountService.register so that rejected input never reaches the store.

    Raises:
        InputValidationError: empty username, or password shorter than
            MIN_PASSWORD_LENGTH characters.
    """
    if not username or not username.strip():
        raise InputValidationError("Username must not be empty")
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise InputValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


# PUBLIC_INTERFACE
class UserAccountService:
    """Registration and lookup of user accounts."""

    def __init__(self, users: UserRepository, hasher: PasswordHasher) -> None:
        self._users = users
        self._hasher = hasher

    def register(self, username: str, password: str) -> UserEntity:
        """
        Create a user with a hashed password and return the stored record.

        Raises:
            ConflictError: the username is already taken, either by the
                existence pre-check or by the store's uniqueness constraint.
        """
        if self._users.exists_by_username(username):
            raise ConflictError(f"Username already exists: {username}")

        user: UserEntity = {
            "id": None,
            "username": username,
            "password_hash": self._hasher.hash(password),
        }
        saved = self._users.save(user)
        logger.info("Registered user %r (id=%s)", saved["username"], saved["id"])
        return saved

    def find_by_username(self, username: str) -> UserEntity:
        user = self._users.find_by_username(username)
        if user is None:
            raise NotFoundError(f"User not found: {username}")
        return user

    def username_exists(self, username: str) -> bool:
        """
        Existence check for pre-registration feedback. A later ConflictError
        from register() still wins.
        """
        return self._users.exists_by_username(username)


# PUBLIC_INTERFACE
class AuthenticationService:
    """
    Resolves usernames to principals and checks presented credentials.
    """

    def __init__(self, users: UserRepository, hasher: PasswordHasher) -> None:
        self._users = users
        self._hasher = hasher

    def resolve_identity(self, username: str) -> Principal:
        """
        Raises:
            NotFoundError: no user has this username.
        """
        user = self._users.find_by_username(username)
        if user is None:
            raise NotFoundError(f"User not found: {username}")
        return Principal.from_user(user)

    def authenticate(self, username: str, password: str) -> Principal:
        """
        Raises:
            InvalidCredentialsError: unknown user or wrong password.
        """
        return verify_credentials(self.resolve_identity, self._hasher, username, password)
