"""Customer self-service: the logged-in customer's vehicles and appointments."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_customer
from db.appointment import Appointment as AppointmentModel
from db.customer import Customer as CustomerModel
from db.database import get_async_session
from db.service import Service as ServiceModel
from db.users import User
from db.vehicle import Vehicle as VehicleModel
from routers.customers import plate_taken
from schemas.appointments import AppointmentCreate, AppointmentRead, AppointmentUpdate
from schemas.customers import VehicleCreate, VehicleRead, VehicleUpdate

router = APIRouter()

OPEN_STATUSES = ("PENDING", "CONFIRMED")


async def _get_my_vehicle(db: AsyncSession, user: User, vehicle_id: UUID) -> VehicleModel:
    res = await db.execute(
        select(VehicleModel).where(VehicleModel.id == vehicle_id, VehicleModel.user_id == user.id)
    )
    v = res.scalar_one_or_none()
    if not v:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    return v


async def _get_my_appointment(db: AsyncSession, user: User, appointment_id: UUID) -> AppointmentModel:
    res = await db.execute(
        select(AppointmentModel)
        .where(AppointmentModel.id == appointment_id, AppointmentModel.user_id == user.id)
        .execution_options(populate_existing=True)
    )
    a = res.scalar_one_or_none()
    if not a:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return a


async def _ensure_slot_free(db: AsyncSession, when: datetime, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(AppointmentModel.id).where(
        AppointmentModel.preferred_date_time == when,
        AppointmentModel.status.in_(OPEN_STATUSES),
    )
    if exclude_id is not None:
        stmt = stmt.where(AppointmentModel.id != exclude_id)
    if (await db.execute(stmt.limit(1))).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This time slot is already booked")


async def _customer_for(db: AsyncSession, user: User) -> CustomerModel:
    """The shop's customer record for this account, created on first use."""
    res = await db.execute(select(CustomerModel).where(func.lower(CustomerModel.email) == user.email.lower()))
    customer = res.scalar_one_or_none()
    if customer is None:
        customer = CustomerModel(name=user.name or user.email, email=user.email, phone=user.phone or "")
        db.add(customer)
        await db.flush()
    return customer


# Vehicles

@router.get("/vehicles", response_model=List[VehicleRead])
async def get_my_vehicles(
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(VehicleModel).where(VehicleModel.user_id == user.id).order_by(VehicleModel.created_at.desc())
    )
    return [VehicleRead(**v.to_schema) for v in res.scalars().all()]


@router.post("/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def add_my_vehicle(
    payload: VehicleCreate,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    if await plate_taken(db, payload.license_plate):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vehicle with this license plate already exists")

    customer = await _customer_for(db, user)
    v = VehicleModel(
        make=payload.make,
        model=payload.model,
        year=payload.year,
        license_plate=payload.license_plate,
        customer_id=customer.id,
        user_id=user.id,
    )
    db.add(v)
    await db.commit()
    await db.refresh(v)
    return VehicleRead(**v.to_schema)


@router.put("/vehicles/{vehicle_id}", response_model=VehicleRead)
async def update_my_vehicle(
    vehicle_id: UUID,
    payload: VehicleUpdate,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    v = await _get_my_vehicle(db, user, vehicle_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("license_plate") and data["license_plate"] != v.license_plate:
        if await plate_taken(db, data["license_plate"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vehicle with this license plate already exists")
        v.license_plate = data["license_plate"]
    for field in ("make", "model", "year"):
        if data.get(field) is not None:
            setattr(v, field, data[field])

    await db.commit()
    await db.refresh(v)
    return VehicleRead(**v.to_schema)


@router.delete("/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_vehicle(
    vehicle_id: UUID,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    v = await _get_my_vehicle(db, user, vehicle_id)
    await db.delete(v)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Appointments

@router.get("/appointments", response_model=List[AppointmentRead])
async def get_my_appointments(
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(AppointmentModel)
        .where(AppointmentModel.user_id == user.id)
        .order_by(AppointmentModel.preferred_date_time.desc())
    )
    return [AppointmentRead(**a.to_schema) for a in res.scalars().all()]


@router.post("/appointments", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_my_appointment(
    payload: AppointmentCreate,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    service = (await db.execute(select(ServiceModel).where(ServiceModel.id == payload.service_id))).scalar_one_or_none()
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")

    await _ensure_slot_free(db, payload.preferred_date_time)

    a = AppointmentModel(
        service_id=payload.service_id,
        user_id=user.id,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        vehicle_model=payload.vehicle_model,
        preferred_date_time=payload.preferred_date_time,
        notes=payload.notes,
        status="PENDING",
    )
    db.add(a)
    await db.commit()
    return AppointmentRead(**(await _get_my_appointment(db, user, a.id)).to_schema)


@router.put("/appointments/{appointment_id}", response_model=AppointmentRead)
async def update_my_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdate,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    a = await _get_my_appointment(db, user, appointment_id)
    if a.status in ("COMPLETED", "CANCELLED"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot modify completed or cancelled appointments",
        )

    data = payload.model_dump(exclude_unset=True)
    if data.get("preferred_date_time") is not None:
        await _ensure_slot_free(db, data["preferred_date_time"], exclude_id=a.id)
        a.preferred_date_time = data["preferred_date_time"]
    if "notes" in data:
        a.notes = data["notes"]

    await db.commit()
    return AppointmentRead(**(await _get_my_appointment(db, user, appointment_id)).to_schema)


@router.patch("/appointments/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel_my_appointment(
    appointment_id: UUID,
    user: User = Depends(current_customer),
    db: AsyncSession = Depends(get_async_session),
):
    a = await _get_my_appointment(db, user, appointment_id)
    if a.status == "COMPLETED":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot cancel completed appointments")

    a.status = "CANCELLED"
    await db.commit()
    return AppointmentRead(**(await _get_my_appointment(db, user, appointment_id)).to_schema)
