"""Authentication endpoints: registration, login and password reset."""

from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status

from chatdesk.api.dependencies import (
    CaptchaDep,
    ClientAddressDep,
    ExpiringStoreDep,
    MailerDep,
    SessionDep,
    http_error,
)
from chatdesk.core import security
from chatdesk.core.errors import ConflictError, InvalidArgumentError, NotFoundError, ServiceError
from chatdesk.core.settings import settings
from chatdesk.schemas.user import (
    DetailResponse,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from chatdesk.services import auth_service, user_service
from chatdesk.services.mailer import password_reset_email, verification_code_email, welcome_email
from chatdesk.services.verification import issue_code, redeem_code

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

FORGOT_PASSWORD_REPLY = "If that email is registered, a reset link has been sent"


@router.post("/send-verification-code", response_model=DetailResponse)
async def send_verification_code(
    payload: EmailRequest,
    db: SessionDep,
    store: ExpiringStoreDep,
    mailer: MailerDep,
) -> DetailResponse:
    """Email a registration code valid for a few minutes."""
    if user_service.get_user_by_email(db, payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    code = issue_code(store, payload.email)
    subject, body = verification_code_email(code)
    try:
        await mailer.send(payload.email, subject, body)
    except ServiceError as err:
        logger.error("Could not send verification code to %s: %s", payload.email, err)
        raise http_error(err) from err
    return DetailResponse(message="Verification code sent")


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(
    payload: RegisterRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: SessionDep,
    store: ExpiringStoreDep,
    mailer: MailerDep,
    captcha: CaptchaDep,
) -> UserResponse:
    """Create an account after bot verification and email confirmation."""
    if not payload.turnstile_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bot verification token is required",
        )

    try:
        remote_ip = request.client.host if request.client else None
        if not await captcha.verify(payload.turnstile_token, remote_ip):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Bot verification failed",
            )

        security.check_password_length(payload.password)
        if user_service.get_user_by_email(db, payload.email) is not None:
            raise ConflictError("Email is already registered")
        if payload.username and user_service.is_username_taken(db, payload.username):
            raise ConflictError("Username is already taken")

        redeem_code(store, payload.email, payload.code)
        user = user_service.create_user(db, payload.email, payload.password, payload.username)
    except ServiceError as err:
        raise http_error(err) from err

    subject, body = welcome_email(user.display_name)
    background_tasks.add_task(mailer.send_in_background, user.email, subject, body)
    logger.info("Registered user %s", user.id)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    db: SessionDep,
    store: ExpiringStoreDep,
    client_key: ClientAddressDep,
) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    try:
        user = auth_service.authenticate(db, store, client_key, payload.email, payload.password)
    except ServiceError as err:
        raise http_error(err) from err
    return LoginResponse(
        access_token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/forgot-password", response_model=DetailResponse)
async def forgot_password(
    payload: EmailRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: SessionDep,
    mailer: MailerDep,
) -> DetailResponse:
    """Mail a reset link; the reply never reveals whether the account exists."""
    user = user_service.get_user_by_email(db, payload.email)
    if user is not None:
        token = security.create_password_reset_token(user.id, user.email)
        base_url = (settings.base_url or str(request.base_url)).rstrip("/")
        subject, body = password_reset_email(f"{base_url}/reset-password?token={quote(token)}")
        background_tasks.add_task(mailer.send_in_background, user.email, subject, body)
    return DetailResponse(message=FORGOT_PASSWORD_REPLY)


@router.post("/reset-password", response_model=DetailResponse)
async def reset_password(payload: ResetPasswordRequest, db: SessionDep) -> DetailResponse:
    """Set a new password using a token from the reset email."""
    try:
        user_id = security.decode_password_reset_token(payload.token)
        security.check_password_length(payload.new_password)
        try:
            user_service.set_password(db, user_id, payload.new_password)
        except NotFoundError as err:
            raise InvalidArgumentError("Password reset link is invalid, request a new one") from err
    except ServiceError as err:
        raise http_error(err) from err
    return DetailResponse(message="Password has been reset")
