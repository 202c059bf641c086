from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.users import Profile


async def find_profile(db: AsyncSession, user_id: int) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalars().first()


async def get_profile_or_400(db: AsyncSession, user_id: int) -> Profile:
    profile = await find_profile(db, user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Profile not found")
    return profile


async def ensure_license_unique(
    db: AsyncSession, license: Optional[str], exclude_id: Optional[int] = None
) -> None:
    if not license:
        return
    query = select(Profile.id).where(Profile.license == license)
    if exclude_id is not None:
        query = query.where(Profile.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="License already registered")
