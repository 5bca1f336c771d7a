"""
Stock change audit log.

One row per successful stock adjustment, written in the same transaction as
the new quantity. Rows are append-only (see db.immutability).
"""

import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base, utcnow


class StockChangeLog(Base):
    __tablename__ = "stock_change_logs"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    tire_id = Column(GUID, ForeignKey("tires.id", ondelete="RESTRICT"), nullable=False, index=True)

    change = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)
    # RESTRICT: the database must never rewrite who made a change
    user_id = Column(GUID, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True, index=True)

    tire = relationship("Tire", back_populates="stock_change_logs")
    user = relationship("User", lazy="joined")

    @property
    def to_schema(self):
        user = self.user
        return {
            "id": self.id,
            "tire_id": self.tire_id,
            "change": int(self.change),
            "reason": self.reason,
            "user_id": self.user_id,
            "user": {"name": user.name, "email": user.email} if user else None,
            "created_at": self.created_at,
        }
