from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.models.clinics import Clinic
from core.models.users import User, Role
from core.dependencies import get_db, get_superadmin, get_staff_admin, get_any_user
from modules.pydantic_model.clinic import (
    ClinicCreate,
    ClinicUpdate,
    ClinicResponse,
    ClinicPage,
    ClinicMemberCreate,
)
from modules.pydantic_model.common import MessageResponse
from modules.pydantic_model.user import UserResponse
from modules.services import membership
from modules.services.users import get_user_or_400

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics", tags=["clinics"])

# Checked in this order; the first taken field is reported
UNIQUE_CLINIC_FIELDS = (
    ("name", "Clinic name already exists"),
    ("address", "Clinic address already exists"),
    ("phone", "Clinic phone number already exists"),
    ("email", "Clinic email already exists"),
)


async def ensure_clinic_unique(db: AsyncSession, values: dict, exclude_id: Optional[int] = None) -> None:
    provided = {field: values.get(field) for field, _ in UNIQUE_CLINIC_FIELDS if values.get(field)}
    if not provided:
        return

    query = select(Clinic).where(or_(*(getattr(Clinic, field) == value for field, value in provided.items())))
    if exclude_id is not None:
        query = query.where(Clinic.id != exclude_id)
    existing_clinics = (await db.execute(query)).scalars().all()

    for field, message in UNIQUE_CLINIC_FIELDS:
        if field in provided and any(getattr(clinic, field) == provided[field] for clinic in existing_clinics):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


async def get_clinic_or_400(db: AsyncSession, clinic_id: int) -> Clinic:
    clinic = await db.get(Clinic, clinic_id)
    if not clinic:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Clinic not found")
    return clinic


# Clinic Endpoints
@router.post("", response_model=ClinicResponse, status_code=status.HTTP_201_CREATED)
async def create_clinic(
    clinic: ClinicCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    values = clinic.model_dump(exclude_none=True)
    await ensure_clinic_unique(db, values)

    try:
        db_clinic = Clinic(**values)
        db.add(db_clinic)
        await db.flush()

        # New clinics are visible to every superadmin
        await membership.associate_clinic_with_superadmins(db, db_clinic.id)

        await db.commit()
        await db.refresh(db_clinic)

    except IntegrityError:
        await db.rollback()
        # A concurrent create took one of the unique values
        await ensure_clinic_unique(db, values)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to create clinic")

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while creating clinic %s", clinic.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    logger.info("User %s created clinic %s", user.id, db_clinic.id)
    return db_clinic


@router.get("", response_model=ClinicPage)
async def read_clinics(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    total = (await db.execute(select(func.count()).select_from(Clinic))).scalar_one()
    result = await db.execute(
        select(Clinic).order_by(Clinic.id).offset((page - 1) * limit).limit(limit)
    )
    return {"clinics": result.scalars().all(), "total": total, "page": page, "limit": limit}


@router.get("/{clinic_id}", response_model=ClinicResponse)
async def read_clinic(
    clinic_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_any_user),
):
    return await get_clinic_or_400(db, clinic_id)


@router.patch("/{clinic_id}", response_model=ClinicResponse)
async def update_clinic(
    clinic_id: int,
    clinic: ClinicUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    db_clinic = await get_clinic_or_400(db, clinic_id)

    changes = {
        key: value
        for key, value in clinic.model_dump(exclude_unset=True).items()
        if value is not None or key in ("address", "email", "manager")
    }
    await ensure_clinic_unique(db, changes, exclude_id=clinic_id)

    reactivated = changes.get("is_active") is True and not db_clinic.is_active

    try:
        for key, value in changes.items():
            setattr(db_clinic, key, value)
        if reactivated:
            db_clinic.deleted_at = None
            await db.flush()
            await membership.associate_clinic_with_superadmins(db, db_clinic.id)

        await db.commit()
        await db.refresh(db_clinic)

    except IntegrityError:
        await db.rollback()
        await ensure_clinic_unique(db, changes, exclude_id=clinic_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to update clinic")

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while updating clinic %s", clinic_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    return db_clinic


@router.put("/{clinic_id}", response_model=MessageResponse)
async def soft_delete_clinic(
    clinic_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    db_clinic = await get_clinic_or_400(db, clinic_id)

    try:
        db_clinic.deleted_at = datetime.now(timezone.utc)
        db_clinic.is_active = False
        await db.commit()

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while deactivating clinic %s", clinic_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    logger.info("User %s deactivated clinic %s", user.id, clinic_id)
    return {"message": "Clinic deactivated successfully"}


@router.delete("/{clinic_id}", response_model=MessageResponse)
async def delete_clinic(
    clinic_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    db_clinic = await get_clinic_or_400(db, clinic_id)

    try:
        await membership.remove_clinic_links(db, clinic_id)
        await db.delete(db_clinic)
        await db.commit()

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while deleting clinic %s", clinic_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    logger.info("User %s deleted clinic %s", user.id, clinic_id)
    return {"message": "Clinic deleted successfully"}


# Clinic membership
@router.get("/{clinic_id}/users", response_model=List[UserResponse])
async def read_clinic_users(
    clinic_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_staff_admin),
):
    await get_clinic_or_400(db, clinic_id)
    return await membership.list_clinic_users(db, clinic_id)


@router.post("/{clinic_id}/users", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def add_clinic_user(
    clinic_id: int,
    body: ClinicMemberCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    await get_clinic_or_400(db, clinic_id)
    await get_user_or_400(db, body.user_id)

    try:
        created = await membership.link_user(db, body.user_id, clinic_id)
        await db.commit()

    except IntegrityError:
        # Linked by a concurrent request
        await db.rollback()
        created = False

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while linking user %s to clinic %s", body.user_id, clinic_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    if not created:
        return {"message": "User already associated with clinic"}
    return {"message": "User associated with clinic"}


@router.delete("/{clinic_id}/users/{user_id}", response_model=MessageResponse)
async def remove_clinic_user(
    clinic_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    await get_clinic_or_400(db, clinic_id)
    member = await get_user_or_400(db, user_id)

    if member.role == Role.SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Superadmins cannot be removed from clinics"
        )

    try:
        removed = await membership.unlink_user(db, user_id, clinic_id)
        await db.commit()

    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Database error while unlinking user %s from clinic %s", user_id, clinic_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is not associated with this clinic"
        )
    return {"message": "User removed from clinic"}
