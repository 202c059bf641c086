from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from core.models.users import User, Profile, Role
from core.dependencies import get_db, get_staff_admin
from core.security import get_password_hash
from ..pydantic_model.user import UserCreate, UserUpdate, UserResponse, UserPage
from ..pydantic_model.common import MessageResponse
from ..services.membership import associate_superadmin_with_clinics, remove_user_links
from ..services.profiles import ensure_license_unique
from ..services.users import ensure_user_unique, get_user_or_400, find_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/create", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    if admin.role != Role.SUPERADMIN and user_data.user_type == Role.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only superadmins can create other superadmins"
        )

    await ensure_user_unique(db, email=user_data.email, username=user_data.username)
    if user_data.profile:
        await ensure_license_unique(db, user_data.profile.license)

    try:
        # User, profile and clinic links in one transaction
        new_user = User(
            email=user_data.email,
            username=user_data.username,
            password=get_password_hash(user_data.password),
            is_verified=user_data.is_verified,
            role=user_data.user_type,
        )
        db.add(new_user)
        await db.flush()  # Get new_user.id before commit

        if user_data.profile:
            db.add(Profile(user_id=new_user.id, **user_data.profile.model_dump()))

        if new_user.role == Role.SUPERADMIN:
            await associate_superadmin_with_clinics(db, new_user.id)

        await db.commit()
        await db.refresh(new_user)

    except IntegrityError:
        await db.rollback()
        await ensure_user_unique(db, email=user_data.email, username=user_data.username)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to create user")

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while creating user %s", user_data.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

    logger.info("User %s created user %s as %s", admin.id, new_user.id, new_user.role.value)
    return new_user


@router.get("", response_model=UserPage)
async def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    total = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    result = await db.execute(
        select(User).order_by(User.id).offset((page - 1) * limit).limit(limit)
    )
    return {"users": result.scalars().all(), "total": total, "page": page, "limit": limit}


@router.get("/email", response_model=UserResponse)
async def get_user_by_email(
    email: str = Query(...),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    user = await find_by_email(db, email)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="no users for this email")
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    return await get_user_or_400(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    user = await get_user_or_400(db, user_id)

    # Only username may be cleared; nulls elsewhere mean "unchanged"
    changes = {
        key: value
        for key, value in user_data.model_dump(exclude_unset=True).items()
        if value is not None or key == "username"
    }
    new_role = changes.pop("user_type", None)

    if user.role == Role.SUPERADMIN and admin.role != Role.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only superadmins can update other superadmins"
        )

    if new_role == Role.SUPERADMIN and admin.role != Role.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only superadmins can set user type to superadmin"
        )

    await ensure_user_unique(
        db, email=changes.get("email"), username=changes.get("username"), exclude_id=user.id
    )

    if "password" in changes:
        changes["password"] = get_password_hash(changes["password"])

    promoted = new_role == Role.SUPERADMIN and user.role != Role.SUPERADMIN

    try:
        for key, value in changes.items():
            setattr(user, key, value)
        if new_role is not None:
            user.role = new_role

        if promoted:
            await db.flush()
            await associate_superadmin_with_clinics(db, user.id)

        await db.commit()
        await db.refresh(user)

    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to update user")

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while updating user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    user = await get_user_or_400(db, user_id, detail="no user found")

    if user.role == Role.SUPERADMIN and admin.role != Role.SUPERADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="cannot delete superadmin")

    try:
        await db.execute(delete(Profile).where(Profile.user_id == user.id))
        await remove_user_links(db, user.id)
        await db.delete(user)
        await db.commit()

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while deleting user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

    logger.info("User %s deleted user %s", admin.id, user_id)
    return {"message": "user deleted"}
