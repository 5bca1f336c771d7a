import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_staff_user
from db.appointment import Appointment as AppointmentModel
from db.database import get_async_session
from db.users import User
from schemas.appointments import AppointmentRead, AppointmentStatus, AppointmentStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

# Anything not listed here (including every move out of COMPLETED or CANCELLED) is rejected
ALLOWED_TRANSITIONS = {
    "PENDING": {"CONFIRMED", "CANCELLED"},
    "CONFIRMED": {"COMPLETED", "CANCELLED"},
}


async def _get_appointment(db: AsyncSession, appointment_id: UUID) -> AppointmentModel:
    res = await db.execute(
        select(AppointmentModel)
        .where(AppointmentModel.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    a = res.scalar_one_or_none()
    if not a:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return a


@router.get("/", response_model=List[AppointmentRead])
async def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    stmt = select(AppointmentModel)
    if status_filter:
        stmt = stmt.where(AppointmentModel.status == status_filter)
    res = await db.execute(stmt.order_by(AppointmentModel.preferred_date_time.desc()))
    return [AppointmentRead(**a.to_schema) for a in res.scalars().all()]


@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: UUID,
    payload: AppointmentStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    a = await _get_appointment(db, appointment_id)
    if payload.status not in ALLOWED_TRANSITIONS.get(a.status, set()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change appointment status from {a.status} to {payload.status}",
        )

    previous = a.status
    a.status = payload.status
    await db.commit()
    logger.info("Appointment %s moved %s -> %s by %s", appointment_id, previous, payload.status, user.id)
    return AppointmentRead(**(await _get_appointment(db, appointment_id)).to_schema)
