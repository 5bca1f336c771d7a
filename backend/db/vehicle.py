import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base, utcnow


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    license_plate = Column(String, nullable=False, unique=True, index=True)

    customer_id = Column(GUID, ForeignKey("customers.id", ondelete="CASCADE"), nullable=True, index=True)
    # Set when the vehicle was registered through the customer's own account
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    customer = relationship("Customer", back_populates="vehicles")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "year": int(self.year),
            "license_plate": self.license_plate,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
        }
