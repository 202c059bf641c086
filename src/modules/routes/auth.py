from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.dependencies import get_db, get_any_user
from core.models.users import User, Role
from core.models.clinics import Clinic
from core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    build_token_payload,
    generate_token,
)
from core.utils.mail import (
    send_verification_email,
    send_password_reset_email,
    send_login_notification,
)
from modules.pydantic_model.auth_schemas import (
    RegisterRequest,
    LoginRequest,
    ChangePasswordRequest,
    ChangeClinicRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    CurrentUserResponse,
    CurrentUserPayloadResponse,
    Token,
)
from modules.pydantic_model.common import MessageResponse
from modules.services.membership import get_current_clinic, get_user_clinics, is_member
from modules.services.users import ensure_user_unique, find_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    await ensure_user_unique(db, email=user_data.email, username=user_data.username)

    new_user = User(
        email=user_data.email,
        username=user_data.username,
        password=get_password_hash(user_data.password),
        is_verified=False,
        verification_token=generate_token(),
        role=Role.USER,
    )

    try:
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
    except IntegrityError:
        await db.rollback()
        # Lost a race with a concurrent signup; report the field that was taken
        await ensure_user_unique(db, email=user_data.email, username=user_data.username)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to create user")
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Registration failed for %s", user_data.email)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    background_tasks.add_task(send_verification_email, new_user.email, new_user.verification_token)
    logger.info("Registered user %s", new_user.id)

    return {"access_token": create_access_token(build_token_payload(new_user))}


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    user = None
    if token:
        result = await db.execute(select(User).where(User.verification_token == token))
        user = result.scalars().first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token",
        )

    user_id = user.id
    try:
        user.is_verified = True
        user.verification_token = None
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Email verification failed for user %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
    return {"message": "Email verified successfully"}


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    user = await find_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email or password")

    if not user.is_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please verify your email first")

    if user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Account is deactivated")

    clinic = await get_current_clinic(db, user.id)
    background_tasks.add_task(send_login_notification, user.email)

    return {"access_token": create_access_token(build_token_payload(user, clinic))}


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(get_any_user)):
    # Tokens are stateless; the client drops its copy
    logger.info("User %s logged out", user.id)
    return {"message": "Logout successful"}


@router.get("/current-user", response_model=CurrentUserResponse)
async def get_current_user_info(user: User = Depends(get_any_user)):
    return user


@router.get("/current-user-payload", response_model=CurrentUserPayloadResponse)
async def get_current_user_payload(
    user: User = Depends(get_any_user),
    db: AsyncSession = Depends(get_db),
):
    user_clinics = await get_user_clinics(db, user.id)
    response = CurrentUserResponse.model_validate(user).model_dump()
    response["user_clinics"] = user_clinics
    return response


@router.patch("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_any_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(body.old_password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid old password")

    user_id = user.id
    try:
        user.password = get_password_hash(body.new_password)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Password change failed for user %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    return {"message": "Password changed successfully"}


@router.patch("/change-clinic", response_model=Token)
async def change_clinic(
    body: ChangeClinicRequest,
    user: User = Depends(get_any_user),
    db: AsyncSession = Depends(get_db),
):
    clinic = await db.get(Clinic, body.clinic_id)
    if not clinic or clinic.deleted_at is not None or not clinic.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Clinic not found")

    if not await is_member(db, user.id, clinic.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is not associated with this clinic",
        )

    payload = build_token_payload(user, {"id": clinic.id, "name": clinic.name})
    return {"access_token": create_access_token(payload)}


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    user = await find_by_email(db, body.email)
    if user and user.deleted_at is None:
        reset_token = generate_token()
        user_id, user_email = user.id, user.email
        try:
            user.reset_password_token = reset_token
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Storing reset token failed for user %s", user_id)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
        background_tasks.add_task(send_password_reset_email, user_email, reset_token)
    else:
        logger.info("Password reset requested for unknown email")

    return {"message": "If the email is registered, a reset link has been sent"}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.reset_password_token == body.token))
    user = result.scalars().first()
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user_id = user.id
    try:
        user.password = get_password_hash(body.new_password)
        user.reset_password_token = None
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Password reset failed for user %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
    return {"message": "Password reset successfully"}
