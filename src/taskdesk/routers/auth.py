from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from ..accounts import AuthenticationService, UserAccountService, validate_registration
from ..auth import SESSION_USER_KEY
from ..dependencies import get_account_service, get_auth_service
from ..schemas import LoginRequest, RegisterRequest, UserOut

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a user account. Passwords must be at least 4 characters long.",
    responses={
        201: {"description": "User registered"},
        409: {"description": "Username already taken"},
        422: {"description": "Validation error"},
    },
)
def register(
    payload: RegisterRequest,
    accounts: UserAccountService = Depends(get_account_service),
) -> UserOut:
    """
    Register a new user. Input policy is checked before the store is touched.
    """
    username = payload.username.strip()
    validate_registration(username, payload.password)
    user = accounts.register(username, payload.password)
    return UserOut(id=user["id"], username=user["username"])  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=UserOut,
    summary="Log in",
    description="Check credentials and bind the user to the session cookie.",
    responses={
        200: {"description": "Logged in"},
        401: {"description": "Invalid username or password"},
    },
)
def login(
    payload: LoginRequest,
    request: Request,
    auth: AuthenticationService = Depends(get_auth_service),
) -> UserOut:
    # Same normalisation as register, so " alice" logs in as the user it created
    principal = auth.authenticate(payload.username.strip(), payload.password)
    # Drop anything left over from a previous session
    request.session.clear()
    request.session[SESSION_USER_KEY] = principal.username
    return UserOut(id=principal.id, username=principal.username)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out",
    description="Invalidate the current session. Succeeds even without one.",
)
def logout(request: Request) -> Response:
    request.session.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
