import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.config import settings
from core.dependencies import get_db
from core.models.users import User, Role
from core.security import get_password_hash
from modules.services.membership import associate_superadmin_with_clinics

logger = logging.getLogger(__name__)


async def create_superadmin(
    session: AsyncSession,
    email: Optional[str] = None,
    password: Optional[str] = None,
    username: Optional[str] = None,
) -> Optional[User]:
    """Creates the configured superadmin account if it does not exist yet.

    The account is verified and linked to every active clinic. Returns the new
    user, or None when nothing was created.
    """
    email = email or settings.SUPERADMIN_EMAIL
    password = password or settings.SUPERADMIN_PASSWORD
    if not email or not password:
        logger.debug("No superadmin configured, skipping bootstrap")
        return None

    result = await session.execute(select(User).filter_by(email=email))
    if result.scalars().first():
        logger.info("Superadmin %s already exists", email)
        return None

    superadmin = User(
        email=email,
        username=username or settings.SUPERADMIN_USERNAME,
        password=get_password_hash(password),
        is_verified=True,
        role=Role.SUPERADMIN,
    )
    session.add(superadmin)
    await session.flush()

    linked = await associate_superadmin_with_clinics(session, superadmin.id)
    await session.commit()
    await session.refresh(superadmin)

    logger.info("Superadmin %s created and linked to %d clinics", email, linked)
    return superadmin


async def bootstrap_superadmin():
    """Runs the superadmin bootstrap on a fresh session."""
    async for session in get_db():
        try:
            await create_superadmin(session)
        except IntegrityError:
            await session.rollback()
            logger.warning("Superadmin username or email already taken, skipping bootstrap")
