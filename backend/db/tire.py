import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base, utcnow


def _new_qr_code_id() -> str:
    return uuid.uuid4().hex


class Tire(Base):
    __tablename__ = "tires"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_tires_stock_quantity_non_negative"),
    )

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    brand = Column(String, nullable=False, index=True)
    size = Column(String, nullable=False, index=True)
    season = Column(Text, nullable=False, index=True)  # 'SUMMER' | 'WINTER' | 'ALL_SEASON'
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)

    # Written only through core.stock; every change has a StockChangeLog row
    stock_quantity = Column(Integer, nullable=False, default=0)

    qr_code_id = Column(String, nullable=False, unique=True, index=True, default=_new_qr_code_id)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    # No cascade: tires are soft-deleted and their history is never removed
    stock_change_logs = relationship("StockChangeLog", back_populates="tire", passive_deletes="all")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "size": self.size,
            "season": self.season,
            "price": float(self.price) if self.price is not None else None,
            "description": self.description,
            "image_url": self.image_url,
            "stock_quantity": int(self.stock_quantity or 0),
            "qr_code_id": self.qr_code_id,
            "is_active": bool(self.is_active),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
