"""Admin user management on top of the fastapi-users routes"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import ROLE_ADMIN, current_active_superuser, get_user_manager
from db.appointment import Appointment as AppointmentModel
from db.database import get_async_session
from db.users import User
from db.vehicle import Vehicle as VehicleModel
from schemas.users import AdminUserCreate, Role, RoleUpdate, UserDetail, UserRead

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    res = await db.execute(select(User).where(User.id == user_id))
    u = res.scalar_one_or_none()
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return u


@router.get("/", response_model=List[UserRead])
async def list_users(
    role: Optional[Role] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    admin: User = Depends(current_active_superuser),
):
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    res = await db.execute(stmt.order_by(User.created_at.desc()))
    return [UserRead(**u.to_schema) for u in res.scalars().all()]


@router.get("/{user_id:uuid}", response_model=UserDetail)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    admin: User = Depends(current_active_superuser),
):
    """A user with the vehicles and appointments registered under the account"""
    u = await _get_user(db, user_id)
    vehicles = await db.execute(
        select(VehicleModel).where(VehicleModel.user_id == user_id).order_by(VehicleModel.created_at.desc())
    )
    appointments = await db.execute(
        select(AppointmentModel)
        .where(AppointmentModel.user_id == user_id)
        .order_by(AppointmentModel.preferred_date_time.desc())
    )
    return UserDetail(
        **u.to_schema,
        vehicles=[v.to_schema for v in vehicles.scalars().all()],
        appointments=[a.to_schema for a in appointments.scalars().all()],
    )


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    db: AsyncSession = Depends(get_async_session),
    admin: User = Depends(current_active_superuser),
    user_manager=Depends(get_user_manager),
):
    taken = await db.execute(select(User.id).where(func.lower(User.email) == payload.email.lower()))
    if taken.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    u = User(
        email=payload.email,
        hashed_password=user_manager.password_helper.hash(payload.password),
        name=payload.name,
        phone=payload.phone,
        address=payload.address,
        role=payload.role,
        is_active=True,
        is_superuser=payload.role == ROLE_ADMIN,
        is_verified=True,
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    logger.info("User %s created with role %s by %s", u.id, u.role, admin.id)
    return UserRead(**u.to_schema)


@router.patch("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    db: AsyncSession = Depends(get_async_session),
    admin: User = Depends(current_active_superuser),
):
    u = await _get_user(db, user_id)
    u.role = payload.role
    u.is_superuser = payload.role == ROLE_ADMIN
    await db.commit()
    await db.refresh(u)
    logger.info("User %s role set to %s by %s", user_id, payload.role, admin.id)
    return UserRead(**u.to_schema)
