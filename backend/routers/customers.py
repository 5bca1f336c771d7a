from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_staff_user
from db.customer import Customer as CustomerModel
from db.database import get_async_session
from db.users import User
from db.vehicle import Vehicle as VehicleModel
from schemas.customers import (
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    VehicleCreate,
    VehicleRead,
    VehicleUpdate,
)

router = APIRouter()


async def _get_customer(db: AsyncSession, customer_id: UUID) -> CustomerModel:
    res = await db.execute(
        select(CustomerModel)
        .where(CustomerModel.id == customer_id)
        .execution_options(populate_existing=True)
    )
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return m


async def _email_taken(db: AsyncSession, email: str) -> bool:
    res = await db.execute(select(CustomerModel.id).where(func.lower(CustomerModel.email) == email.lower()))
    return res.first() is not None


async def plate_taken(db: AsyncSession, license_plate: str) -> bool:
    res = await db.execute(select(VehicleModel.id).where(VehicleModel.license_plate == license_plate))
    return res.first() is not None


async def _get_customer_vehicle(db: AsyncSession, customer_id: UUID, vehicle_id: UUID) -> VehicleModel:
    res = await db.execute(select(VehicleModel).where(VehicleModel.id == vehicle_id))
    v = res.scalar_one_or_none()
    if not v:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    if v.customer_id != customer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Vehicle does not belong to this customer")
    return v


@router.get("/", response_model=List[CustomerRead])
async def list_customers(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    res = await db.execute(select(CustomerModel).order_by(func.lower(CustomerModel.name).asc()))
    return [CustomerRead(**c.to_schema) for c in res.scalars().all()]


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    return CustomerRead(**(await _get_customer(db, customer_id)).to_schema)


@router.post("/", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    if await _email_taken(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    m = CustomerModel(name=payload.name, email=payload.email, phone=payload.phone, address=payload.address)
    db.add(m)
    await db.commit()
    return CustomerRead(**(await _get_customer(db, m.id)).to_schema)


@router.put("/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    m = await _get_customer(db, customer_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("email") and data["email"].lower() != m.email.lower():
        if await _email_taken(db, data["email"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        m.email = data["email"]
    for field in ("name", "phone"):
        if data.get(field) is not None:
            setattr(m, field, data[field])
    if "address" in data:
        m.address = data["address"]

    await db.commit()
    return CustomerRead(**(await _get_customer(db, customer_id)).to_schema)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    m = await _get_customer(db, customer_id)
    await db.delete(m)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{customer_id}/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def add_vehicle(
    customer_id: UUID,
    payload: VehicleCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    await _get_customer(db, customer_id)
    if await plate_taken(db, payload.license_plate):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="License plate already registered")

    v = VehicleModel(
        make=payload.make,
        model=payload.model,
        year=payload.year,
        license_plate=payload.license_plate,
        customer_id=customer_id,
    )
    db.add(v)
    await db.commit()
    await db.refresh(v)
    return VehicleRead(**v.to_schema)


@router.put("/{customer_id}/vehicles/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(
    customer_id: UUID,
    vehicle_id: UUID,
    payload: VehicleUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    v = await _get_customer_vehicle(db, customer_id, vehicle_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("license_plate") and data["license_plate"] != v.license_plate:
        if await plate_taken(db, data["license_plate"]):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="License plate already registered")
        v.license_plate = data["license_plate"]
    for field in ("make", "model", "year"):
        if data.get(field) is not None:
            setattr(v, field, data[field])

    await db.commit()
    await db.refresh(v)
    return VehicleRead(**v.to_schema)


@router.delete("/{customer_id}/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    customer_id: UUID,
    vehicle_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_staff_user),
):
    v = await _get_customer_vehicle(db, customer_id, vehicle_id)
    await db.delete(v)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
