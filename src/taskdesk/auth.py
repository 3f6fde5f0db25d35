from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from typing import List, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status

from .accounts import AuthenticationService
from .dependencies import get_auth_service
from .errors import NotFoundError
from .models import Principal

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "username"

# (path pattern, requires an identity). First match wins; unmatched paths
# require an identity.
ACCESS_RULES: List[Tuple[str, bool]] = [
    ("/", False),
    ("/api/v1/auth/*", False),
    ("/docs", False),
    ("/docs/*", False),
    ("/redoc", False),
    ("/openapi.json", False),
    ("/api/v1/users/*", True),
    ("/api/v1/tasks", True),
    ("/api/v1/tasks/*", True),
]


# PUBLIC_INTERFACE
def requires_identity(path: str) -> bool:
    """Return True if requests to this path need a logged-in user."""
    for pattern, required in ACCESS_RULES:
        if fnmatchcase(path, pattern):
            return required
    return True


def session_username(request: Request) -> Optional[str]:
    value = request.session.get(SESSION_USER_KEY)
    return value if isinstance(value, str) and value else None


# PUBLIC_INTERFACE
def get_current_principal(
    request: Request,
    auth: AuthenticationService = Depends(get_auth_service),
) -> Principal:
    """
    Resolve the acting user from the session cookie.

    Raises:
        HTTPException(401) when there is no session, or the session names a
        user that no longer resolves (the session is cleared in that case).
    """
    username = session_username(request)
    if username is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return auth.resolve_identity(username)
    except NotFoundError:
        logger.warning("Session refers to unknown user %r; clearing it", username)
        request.session.clear()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated") from None
