from __future__ import annotations

import logging
from typing import Callable, Optional

import bcrypt

from .errors import InputValidationError, InvalidCredentialsError, NotFoundError
from .models import Principal

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72

PrincipalLookup = Callable[[str], Principal]


# PUBLIC_INTERFACE
class PasswordHasher:
    """
    One-way salted password hashing backed by bcrypt.

    Args:
        rounds: bcrypt cost factor (4..31). Tests use 4; production should
            keep the library default of 12 or higher.
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds
        self._dummy_hash: Optional[bytes] = None

    def hash(self, plaintext: str) -> str:
        """Return the bcrypt hash of the password as text."""
        raw = plaintext.encode("utf-8")
        if len(raw) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InputValidationError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True if the password matches the stored hash."""
        raw = plaintext.encode("utf-8")
        if len(raw) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("ascii"))
        except ValueError:
            # Malformed stored hash
            logger.error("Stored password hash is not a valid bcrypt hash")
            return False

    def burn(self, plaintext: str) -> None:
        """
        Spend the same time as a real verification without a stored hash.
        Used when the user does not exist.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"taskdesk-dummy", bcrypt.gensalt(rounds=self._rounds))
        raw = plaintext.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]
        bcrypt.checkpw(raw, self._dummy_hash)


# PUBLIC_INTERFACE
def verify_credentials(
    lookup: PrincipalLookup,
    hasher: PasswordHasher,
    username: str,
    password: str,
) -> Principal:
    """
    Check a presented username/password pair.

    Args:
        lookup: Resolves a username to a Principal, raising NotFoundError
            when there is no such user.
        hasher: Hasher used to compare the password with the stored hash.
        username: Presented username.
        password: Presented plaintext password.

    Returns:
        The authenticated Principal.

    Raises:
        InvalidCredentialsError: for an unknown user and for a wrong
            password alike.
    """
    try:
        principal = lookup(username)
    except NotFoundError:
        hasher.burn(password)
        logger.info("Login failed for username %r", username)
        raise InvalidCredentialsError() from None

    if not hasher.verify(password, principal.password_hash):
        logger.info("Login failed for username %r", username)
        raise InvalidCredentialsError()

    logger.info("Login succeeded for user id=%s", principal.id)
    return principal
