from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.models.users import User, Profile
from core.dependencies import get_db, get_staff_admin, get_any_user
from ..pydantic_model.profile import ProfileCreate, ProfileUpdate, ProfileResponse
from ..services.profiles import find_profile, get_profile_or_400, ensure_license_unique
from ..services.users import get_user_or_400

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


async def apply_profile_update(db: AsyncSession, profile: Profile, profile_data: ProfileUpdate) -> Profile:
    changes = profile_data.model_dump(exclude_unset=True)
    if changes.get("license"):
        await ensure_license_unique(db, changes["license"], exclude_id=profile.id)

    # Required columns keep their value when null is sent
    for key, value in changes.items():
        if value is None and key in ("birthday", "social_id", "bio", "gender", "first_name", "last_name"):
            continue
        setattr(profile, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to update profile")

    await db.refresh(profile)
    return profile


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile_data: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    await get_user_or_400(db, profile_data.user_id)

    if await find_profile(db, profile_data.user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Profile already exists for this user"
        )
    await ensure_license_unique(db, profile_data.license)

    profile = Profile(**profile_data.model_dump())
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to create profile")

    await db.refresh(profile)
    logger.info("User %s created profile for user %s", admin.id, profile.user_id)
    return profile


@router.get("/my-profile", response_model=ProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_any_user)
):
    return await get_profile_or_400(db, user.id)


@router.patch("/my-profile", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_any_user)
):
    profile = await get_profile_or_400(db, user.id)
    return await apply_profile_update(db, profile, profile_data)


@router.get("/user/{user_id}", response_model=ProfileResponse)
async def get_user_profile(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    return await get_profile_or_400(db, user_id)


@router.patch("/user/{user_id}", response_model=ProfileResponse)
async def update_user_profile(
    user_id: int,
    profile_data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_staff_admin)
):
    profile = await get_profile_or_400(db, user_id)
    return await apply_profile_update(db, profile, profile_data)
