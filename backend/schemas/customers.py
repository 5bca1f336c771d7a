from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


def _max_vehicle_year() -> int:
    return date.today().year + 1


class VehicleRead(BaseModel):
    id: UUID
    make: str
    model: str
    year: int
    license_plate: str
    customer_id: Optional[UUID] = None
    user_id: Optional[UUID] = None


class VehicleCreate(BaseModel):
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: int = Field(ge=1900)
    license_plate: str = Field(min_length=1)

    @field_validator("license_plate")
    @classmethod
    def _plate(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("License plate is required")
        return v

    @model_validator(mode="after")
    def _year_not_in_future(self):
        if self.year > _max_vehicle_year():
            raise ValueError(f"year must be <= {_max_vehicle_year()}")
        return self


class VehicleUpdate(BaseModel):
    make: Optional[str] = Field(default=None, min_length=1)
    model: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1900)
    license_plate: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _year_not_in_future(self):
        if self.year is not None and self.year > _max_vehicle_year():
            raise ValueError(f"year must be <= {_max_vehicle_year()}")
        return self


class CustomerRead(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    address: Optional[str] = None
    vehicles: List[VehicleRead] = []


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
