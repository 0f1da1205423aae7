"""Authentication endpoints: register, login, me, logout, password flows."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import Settings, get_app_settings, get_current_user
from ..models import User
from ..services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Bad Request"},
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    },
)


@router.post(
    "/register",
    response_model=schemas.DataResponse[schemas.AuthOut],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create an account and return it together with a bearer token.

    The password must be at least 6 characters. New accounts always get the
    `user` role. Registering an email twice fails with 400.
    """,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = user_service.register(db, payload)
    return {"success": True, "data": user_service.auth_payload(settings, user)}


@router.post(
    "/login",
    response_model=schemas.DataResponse[schemas.AuthOut],
    summary="Log in with email and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = user_service.authenticate(db, payload.email, payload.password)
    logger.info("[AUTH] Login for user %s", user.id)
    return {"success": True, "data": user_service.auth_payload(settings, user)}


@router.get(
    "/me",
    response_model=schemas.DataResponse[schemas.UserOut],
    summary="Get the current user",
)
def get_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": schemas.UserOut.model_validate(current_user)}


@router.get(
    "/logout",
    summary="Log out",
    description="Tokens are stateless; the client discards its token. Always succeeds for a valid token.",
)
def logout(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": {}}


@router.put(
    "/password",
    response_model=schemas.DataResponse[schemas.AuthOut],
    summary="Change password",
)
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    current_user: User = Depends(get_current_user),
):
    user = user_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return {"success": True, "data": user_service.auth_payload(settings, user)}


@router.post(
    "/forgot-password",
    response_model=schemas.DataResponse[str],
    summary="Request a password reset",
    description="""
    Issues a single-use reset token valid for a few minutes. The response is
    the same whether or not the email belongs to an account.
    """,
)
def forgot_password(
    payload: schemas.ForgotPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user_service.start_password_reset(db, settings, payload.email)
    return {"success": True, "data": "If the email is registered, a reset link has been sent"}


@router.put(
    "/reset-password/{token}",
    response_model=schemas.DataResponse[schemas.AuthOut],
    summary="Reset password with a reset token",
)
def reset_password(
    token: str,
    payload: schemas.ResetPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = user_service.reset_password(db, token, payload.password)
    return {"success": True, "data": user_service.auth_payload(settings, user)}
