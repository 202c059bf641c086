"""Users <-> clinics membership.

Every SUPERADMIN is linked to every active clinic. Both directions of that
rule live here and run inside the caller's transaction: the functions only
add and flush, the route handler owns the commit.

On PostgreSQL both directions take the same transaction-scoped advisory lock
after the triggering row is flushed. A clinic create and a superadmin create
running at once are serialized, and the second one to get the lock reads the
first one's committed row, so neither link is missed.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, delete, and_, text
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.users import User, Role
from core.models.clinics import Clinic, UserClinic

logger = logging.getLogger(__name__)

MEMBERSHIP_LOCK_KEY = 730114


async def lock_membership(db: AsyncSession) -> None:
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": MEMBERSHIP_LOCK_KEY})


def _active_clinic_filter():
    return and_(Clinic.deleted_at.is_(None), Clinic.is_active.is_(True))


async def associate_clinic_with_superadmins(db: AsyncSession, clinic_id: int) -> int:
    await lock_membership(db)
    superadmin_ids = (await db.execute(
        select(User.id).where(User.role == Role.SUPERADMIN, User.deleted_at.is_(None))
    )).scalars().all()
    if not superadmin_ids:
        return 0

    existing = set((await db.execute(
        select(UserClinic.user_id).where(UserClinic.clinic_id == clinic_id)
    )).scalars().all())

    new_links = [
        UserClinic(user_id=user_id, clinic_id=clinic_id)
        for user_id in superadmin_ids
        if user_id not in existing
    ]
    if new_links:
        db.add_all(new_links)
        await db.flush()
    logger.info("Associated clinic %s with %d superadmin(s)", clinic_id, len(new_links))
    return len(new_links)


async def associate_superadmin_with_clinics(db: AsyncSession, user_id: int) -> int:
    await lock_membership(db)
    clinic_ids = (await db.execute(
        select(Clinic.id).where(_active_clinic_filter())
    )).scalars().all()
    if not clinic_ids:
        return 0

    existing = set((await db.execute(
        select(UserClinic.clinic_id).where(UserClinic.user_id == user_id)
    )).scalars().all())

    new_links = [
        UserClinic(user_id=user_id, clinic_id=clinic_id)
        for clinic_id in clinic_ids
        if clinic_id not in existing
    ]
    if new_links:
        db.add_all(new_links)
        await db.flush()
    logger.info("Associated superadmin %s with %d clinic(s)", user_id, len(new_links))
    return len(new_links)


async def get_user_clinics(db: AsyncSession, user_id: int) -> List[dict]:
    result = await db.execute(
        select(Clinic.id, Clinic.name)
        .join(UserClinic, UserClinic.clinic_id == Clinic.id)
        .where(UserClinic.user_id == user_id, _active_clinic_filter())
        .order_by(Clinic.id)
    )
    return [{"id": row.id, "name": row.name} for row in result.all()]


async def get_current_clinic(db: AsyncSession, user_id: int) -> Optional[dict]:
    """First active clinic the user belongs to, or None."""
    clinics = await get_user_clinics(db, user_id)
    return clinics[0] if clinics else None


async def is_member(db: AsyncSession, user_id: int, clinic_id: int) -> bool:
    result = await db.execute(
        select(UserClinic.id).where(
            UserClinic.user_id == user_id, UserClinic.clinic_id == clinic_id
        )
    )
    return result.first() is not None


async def link_user(db: AsyncSession, user_id: int, clinic_id: int) -> bool:
    """Link a user to a clinic. Returns False when the link already existed."""
    if await is_member(db, user_id, clinic_id):
        return False
    db.add(UserClinic(user_id=user_id, clinic_id=clinic_id))
    await db.flush()
    return True


async def unlink_user(db: AsyncSession, user_id: int, clinic_id: int) -> bool:
    result = await db.execute(
        delete(UserClinic).where(
            UserClinic.user_id == user_id, UserClinic.clinic_id == clinic_id
        )
    )
    return result.rowcount > 0


async def list_clinic_users(db: AsyncSession, clinic_id: int) -> List[User]:
    result = await db.execute(
        select(User)
        .join(UserClinic, UserClinic.user_id == User.id)
        .where(UserClinic.clinic_id == clinic_id)
        .order_by(User.id)
    )
    return list(result.scalars().all())


async def remove_user_links(db: AsyncSession, user_id: int) -> None:
    await db.execute(delete(UserClinic).where(UserClinic.user_id == user_id))


async def remove_clinic_links(db: AsyncSession, clinic_id: int) -> None:
    await db.execute(delete(UserClinic).where(UserClinic.clinic_id == clinic_id))
