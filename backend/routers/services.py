from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_superuser
from db.appointment import Appointment as AppointmentModel
from db.database import get_async_session
from db.service import Service as ServiceModel
from db.users import User
from schemas.services import ServiceCreate, ServiceRead, ServiceUpdate

router = APIRouter()


async def _get_service(db: AsyncSession, service_id: UUID) -> ServiceModel:
    res = await db.execute(select(ServiceModel).where(ServiceModel.id == service_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return m


async def _name_taken(db: AsyncSession, name: str, exclude_id: UUID | None = None) -> bool:
    stmt = select(ServiceModel.id).where(func.lower(ServiceModel.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(ServiceModel.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


@router.get("/", response_model=List[ServiceRead])
async def list_services(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(ServiceModel).order_by(ServiceModel.name.asc()))
    return [ServiceRead(**s.to_schema) for s in res.scalars().all()]


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(service_id: UUID, db: AsyncSession = Depends(get_async_session)):
    return ServiceRead(**(await _get_service(db, service_id)).to_schema)


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    if await _name_taken(db, payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Service with this name already exists")

    m = ServiceModel(
        name=payload.name,
        description=payload.description,
        price=payload.price,
        duration_minutes=payload.duration_minutes,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return ServiceRead(**m.to_schema)


@router.put("/{service_id}", response_model=ServiceRead)
async def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    m = await _get_service(db, service_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") and data["name"] != m.name:
        if await _name_taken(db, data["name"], exclude_id=m.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Service with this name already exists")
        m.name = data["name"]
    if data.get("description") is not None:
        m.description = data["description"]
    if data.get("price") is not None:
        m.price = data["price"]
    if data.get("duration_minutes") is not None:
        m.duration_minutes = data["duration_minutes"]

    await db.commit()
    await db.refresh(m)
    return ServiceRead(**m.to_schema)


@router.delete("/{service_id}", response_model=dict)
async def delete_service(
    service_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    m = await _get_service(db, service_id)

    booked = await db.execute(select(AppointmentModel.id).where(AppointmentModel.service_id == service_id).limit(1))
    if booked.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete service that has appointments",
        )

    await db.delete(m)
    await db.commit()
    return {"ok": True}
