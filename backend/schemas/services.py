from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class ServiceRead(BaseModel):
    id: UUID
    name: str
    description: str
    price: float
    duration_minutes: int


class ServiceCreate(BaseModel):
    name: str
    description: str
    price: float = Field(gt=0)
    duration_minutes: int = Field(gt=0)

    @field_validator("name", "description")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0)

    @field_validator("name", "description")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v
