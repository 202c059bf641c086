from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator, Optional
import logging

from .database import AsyncSessionLocal
from .config import settings
from .security import decode_access_token
from .models.users import User, Role

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)

ALL_ROLES = (Role.SUPERADMIN, Role.MANAGER, Role.DOCTOR, Role.USER)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_token_payload(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="access denied, no token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub") or payload.get("id"))
    except (JWTError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="access denied, Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload["id"] = user_id
    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, payload["id"])
    if not user or user.deleted_at is not None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="access denied, Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: Role):
    """Build a dependency that admits only users whose stored role is in ``roles``.

    The role is read from the database rather than the token, so a demotion
    takes effect before the token expires.
    """
    allowed = set(roles)

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.info("User %s with role %s denied, requires %s",
                        user.id, user.role.value, sorted(r.value for r in allowed))
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden resource",
            )
        return user

    return role_checker


get_superadmin = require_roles(Role.SUPERADMIN)
get_staff_admin = require_roles(Role.SUPERADMIN, Role.MANAGER)
get_any_user = require_roles(*ALL_ROLES)
