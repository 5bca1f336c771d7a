import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base, utcnow


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    preferred_date_time = Column(DateTime(timezone=True), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="PENDING", index=True)  # PENDING|CONFIRMED|COMPLETED|CANCELLED

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    service = relationship("Service", lazy="joined")

    @property
    def to_schema(self):
        service = self.service
        return {
            "id": self.id,
            "service_id": self.service_id,
            "service": service.to_schema if service else None,
            "user_id": self.user_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "vehicle_model": self.vehicle_model,
            "preferred_date_time": self.preferred_date_time,
            "notes": self.notes,
            "status": self.status,
        }
