from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, StrictInt, field_validator

Season = Literal["SUMMER", "WINTER", "ALL_SEASON"]


def _strip_or_raise(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("field is required")
    return v


class TireCreate(BaseModel):
    name: str
    brand: str
    size: str
    season: Season
    price: float = Field(gt=0)
    image_url: Optional[HttpUrl] = None
    description: Optional[str] = None
    stock_quantity: int = Field(default=0, ge=0)

    @field_validator("name", "brand", "size")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return _strip_or_raise(v)


class TireUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    season: Optional[Season] = None
    price: Optional[float] = Field(default=None, gt=0)
    image_url: Optional[HttpUrl] = None
    description: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)

    @field_validator("name", "brand", "size")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_raise(v)


class StockUpdate(BaseModel):
    change: StrictInt
    reason: str

    @field_validator("reason")
    @classmethod
    def _reason_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Reason is required")
        return v


class StockChangeUser(BaseModel):
    name: Optional[str] = None
    email: str


class StockChangeRead(BaseModel):
    id: UUID
    tire_id: UUID
    change: int
    reason: str
    user_id: Optional[UUID] = None
    user: Optional[StockChangeUser] = None
    created_at: datetime


class TireRead(BaseModel):
    id: UUID
    name: str
    brand: str
    size: str
    season: Season
    price: float
    description: Optional[str] = None
    image_url: Optional[str] = None
    stock_quantity: int
    qr_code_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TireDetail(TireRead):
    stock_change_logs: List[StockChangeRead] = []


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class TirePage(BaseModel):
    items: List[TireRead]
    pagination: Pagination


class StockHistoryPage(BaseModel):
    logs: List[StockChangeRead]
    pagination: Pagination


class TireQRCode(BaseModel):
    qr_code: str
    qr_code_id: str
    tire_id: UUID
    name: str
    brand: str
