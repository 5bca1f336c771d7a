import asyncio
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

"""
Seed demo data (users, tires, services, vehicles, appointments) into the DB.

Safe to re-run: rows are looked up by their natural key first.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fastapi_users.password import PasswordHelper
from sqlalchemy import func, select

from core.auth import ROLE_ADMIN, ROLE_CUSTOMER
from core.logging_config import setup_logging
from core.stock import apply_stock_change
from db.appointment import Appointment
from db.customer import Customer
from db.database import async_session_maker, create_db_and_tables
from db.service import Service
from db.tire import Tire
from db.users import User
from db.vehicle import Vehicle


password_helper = PasswordHelper()


async def get_or_create_user(
    session,
    email: str,
    password: str,
    name: str,
    role: str,
    phone: str | None = None,
    address: str | None = None,
) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        name=name,
        phone=phone,
        address=address,
        role=role,
        is_active=True,
        is_superuser=role == ROLE_ADMIN,
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def get_or_create_tire(session, admin: User, stock: int, **fields) -> Tire:
    result = await session.execute(
        select(Tire).where(
            func.lower(Tire.name) == fields["name"].lower(),
            Tire.size == fields["size"],
        )
    )
    tire = result.scalar_one_or_none()
    if tire:
        return tire

    tire = Tire(stock_quantity=0, **fields)
    session.add(tire)
    await session.flush()
    # Initial stock goes through the logged path like any other change
    await apply_stock_change(session, tire_id=tire.id, delta=stock, reason="Initial stock", actor_id=admin.id)
    return tire


async def get_or_create_service(session, name: str, description: str, price: Decimal, duration_minutes: int) -> Service:
    result = await session.execute(select(Service).where(func.lower(Service.name) == name.lower()))
    service = result.scalar_one_or_none()
    if service:
        return service

    service = Service(name=name, description=description, price=price, duration_minutes=duration_minutes)
    session.add(service)
    await session.flush()
    return service


async def get_or_create_customer(session, user: User) -> Customer:
    result = await session.execute(select(Customer).where(Customer.email == user.email))
    customer = result.scalar_one_or_none()
    if customer:
        return customer

    customer = Customer(name=user.name, email=user.email, phone=user.phone or "", address=user.address)
    session.add(customer)
    await session.flush()
    return customer


async def get_or_create_vehicle(session, user: User, make: str, model: str, year: int, license_plate: str) -> Vehicle:
    result = await session.execute(select(Vehicle).where(Vehicle.license_plate == license_plate))
    vehicle = result.scalar_one_or_none()
    if vehicle:
        return vehicle

    customer = await get_or_create_customer(session, user)
    vehicle = Vehicle(
        make=make,
        model=model,
        year=year,
        license_plate=license_plate,
        customer_id=customer.id,
        user_id=user.id,
    )
    session.add(vehicle)
    await session.flush()
    return vehicle


async def get_or_create_appointment(
    session,
    user: User,
    service: Service,
    vehicle_model: str,
    preferred_date_time: datetime,
    notes: str | None,
) -> Appointment:
    result = await session.execute(
        select(Appointment).where(
            Appointment.user_id == user.id,
            Appointment.preferred_date_time == preferred_date_time,
        )
    )
    appointment = result.scalar_one_or_none()
    if appointment:
        return appointment

    appointment = Appointment(
        service_id=service.id,
        user_id=user.id,
        customer_name=user.name,
        customer_phone=user.phone or "",
        vehicle_model=vehicle_model,
        preferred_date_time=preferred_date_time,
        notes=notes,
        status="PENDING",
    )
    session.add(appointment)
    await session.flush()
    return appointment


async def seed():
    setup_logging()
    await create_db_and_tables()

    async with async_session_maker() as session:
        async with session.begin():
            admin = await get_or_create_user(session, "admin@gmail.com", "123456", "Admin User", ROLE_ADMIN)
            john = await get_or_create_user(
                session,
                "john.doe@example.com",
                "123456",
                "John Doe",
                ROLE_CUSTOMER,
                phone="+90 555 123 4567",
                address="123 Main Street, Istanbul",
            )
            jane = await get_or_create_user(
                session,
                "jane.smith@example.com",
                "123456",
                "Jane Smith",
                ROLE_CUSTOMER,
                phone="+90 555 987 6543",
                address="456 Oak Avenue, Ankara",
            )

            # Tires (initial stock is logged as "Initial stock")
            tires = [
                await get_or_create_tire(
                    session,
                    admin,
                    20,
                    name="Michelin Pilot Sport 4",
                    brand="Michelin",
                    size="205/55R16",
                    season="SUMMER",
                    price=Decimal("2500.00"),
                    description="High-performance summer tire for passenger cars",
                    image_url="https://example.com/michelin-pilot-sport-4.jpg",
                ),
                await get_or_create_tire(
                    session,
                    admin,
                    15,
                    name="Bridgestone Blizzak",
                    brand="Bridgestone",
                    size="215/65R16",
                    season="WINTER",
                    price=Decimal("2800.00"),
                    description="Premium winter tire for all-season performance",
                    image_url="https://example.com/bridgestone-blizzak.jpg",
                ),
                await get_or_create_tire(
                    session,
                    admin,
                    25,
                    name="Continental AllSeasonContact",
                    brand="Continental",
                    size="225/45R17",
                    season="ALL_SEASON",
                    price=Decimal("2200.00"),
                    description="Versatile all-season tire for year-round use",
                    image_url="https://example.com/continental-allseason.jpg",
                ),
            ]

            mounting = await get_or_create_service(
                session, "Tire Mounting and Balancing", "Professional tire mounting and balancing service", Decimal("150.00"), 60
            )
            alignment = await get_or_create_service(
                session, "Wheel Alignment", "Precise wheel alignment service", Decimal("200.00"), 90
            )
            await get_or_create_service(session, "Tire Rotation", "Regular tire rotation service", Decimal("100.00"), 45)

            await get_or_create_vehicle(session, john, "Toyota", "Corolla", 2020, "34 ABC 123")
            await get_or_create_vehicle(session, john, "Honda", "Civic", 2021, "06 XYZ 789")
            await get_or_create_vehicle(session, jane, "Ford", "Focus", 2019, "35 DEF 456")

            await get_or_create_appointment(
                session,
                john,
                mounting,
                "Toyota Corolla 2020",
                datetime(2024, 7, 15, 10, 0, tzinfo=timezone.utc),
                "Front tires need replacement",
            )
            await get_or_create_appointment(
                session,
                jane,
                alignment,
                "Ford Focus 2019",
                datetime(2024, 7, 16, 14, 0, tzinfo=timezone.utc),
                "Steering feels off-center",
            )

    print(f"Seeded admin {admin.email}, customers {john.email} and {jane.email}, {len(tires)} tires")


if __name__ == "__main__":
    asyncio.run(seed())
