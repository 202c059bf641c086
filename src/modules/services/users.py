from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.users import User


async def ensure_user_unique(
    db: AsyncSession,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> None:
    """Reject an email or username held by another user, email first."""
    conditions = []
    if email:
        conditions.append(User.email == email)
    if username:
        conditions.append(User.username == username)
    if not conditions:
        return

    query = select(User).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    existing_users = (await db.execute(query)).scalars().all()

    if any(user.email == email for user in existing_users):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if any(user.username == username for user in existing_users):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")


async def get_user_or_400(db: AsyncSession, user_id: int, detail: str = "User not found") -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return user


async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()
