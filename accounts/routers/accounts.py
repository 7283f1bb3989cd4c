"""Account API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from accounts.dependencies import ClientInfo, get_client_info
from accounts.errors import UsernameTaken
from accounts.schemas.accounts import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
    VerifyRequest,
)
from accounts.services.users import UserManager, get_user_manager

logger = logging.getLogger("accounts")

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with that username, a reset link has been generated."


@router.post("/register", response_model=UserResponse, status_code=201)
def register(body: RegisterRequest, users: UserManager = Depends(get_user_manager)) -> UserResponse:
    """Register a new user account."""
    try:
        user = users.create(body.username, body.password)
    except UsernameTaken:
        raise HTTPException(status_code=400, detail="Username already taken")

    return UserResponse.model_validate(user)


@router.post("/login", response_model=UserResponse)
def login(body: LoginRequest, users: UserManager = Depends(get_user_manager)) -> UserResponse:
    """Check credentials and return the account."""
    user = users.login(body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")

    return UserResponse.model_validate(user)


@router.post("/{user_id}/verify", status_code=204)
def verify(user_id: int, body: VerifyRequest, users: UserManager = Depends(get_user_manager)) -> Response:
    """Confirm email ownership. Always 204; re-read the account to see the outcome."""
    users.verify(user_id, body.code)
    return Response(status_code=204)


@router.post("/forgot-password")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    client: ClientInfo = Depends(get_client_info),
    users: UserManager = Depends(get_user_manager),
) -> dict:
    """Request a password reset. The reset link is only written to the DEBUG log."""
    user, token = users.create_reset_token(body.username, client.ip_address, client.user_agent)

    if user is not None:
        base_url = str(request.base_url).rstrip("/")
        logger.info("Password reset link issued for user %d", user.id)
        # Stand-in for mail delivery; carries the secret token
        logger.debug("PASSWORD RESET: %s/reset-password?user=%d&token=%s", base_url, user.id, token)

    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, users: UserManager = Depends(get_user_manager)) -> dict:
    """Set a new password using a valid reset token."""
    if not users.reset_password(body.user_id, body.token, body.new_password):
        raise HTTPException(status_code=400, detail="Invalid or expired reset link")

    return {"message": "Password has been reset."}
