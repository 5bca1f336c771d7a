from typing import List, Literal, Optional
from uuid import UUID

from fastapi_users import schemas
from pydantic import BaseModel, EmailStr, Field, field_validator

from schemas.appointments import AppointmentRead
from schemas.customers import VehicleRead

Role = Literal["ADMIN", "STAFF", "CUSTOMER"]


class UserRead(schemas.BaseUser[UUID]):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role = "CUSTOMER"


# Self-registration never carries a role; new accounts are CUSTOMER
class UserCreate(schemas.BaseUserCreate):
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name is required")
        return v


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role = "CUSTOMER"


class RoleUpdate(BaseModel):
    role: Role


class UserDetail(UserRead):
    vehicles: List[VehicleRead] = []
    appointments: List[AppointmentRead] = []
