from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schemas.services import ServiceRead

AppointmentStatus = Literal["PENDING", "CONFIRMED", "COMPLETED", "CANCELLED"]


class AppointmentRead(BaseModel):
    id: UUID
    service_id: UUID
    service: Optional[ServiceRead] = None
    user_id: UUID
    customer_name: str
    customer_phone: str
    vehicle_model: str
    preferred_date_time: datetime
    notes: Optional[str] = None
    status: AppointmentStatus


class AppointmentCreate(BaseModel):
    service_id: UUID
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    vehicle_model: str = Field(min_length=1)
    preferred_date_time: datetime
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    preferred_date_time: Optional[datetime] = None
    notes: Optional[str] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
