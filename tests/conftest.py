# tests/conftest.py
import os

# The app module builds its engine at import time; keep it off Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")

from decimal import Decimal

import pytest
from fastapi_users.password import PasswordHelper
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STAFF
from core.stock import apply_stock_change
from db import appointment, customer, service, stock_change_log, tire, users, vehicle  # noqa: F401
from db.database import Base, get_async_session
from db.immutability import register_append_only_listeners
from db.service import Service
from db.tire import Tire
from db.users import User
from main import app

PASSWORD = "secret123"

password_helper = PasswordHelper()


@pytest.fixture
async def engine(tmp_path):
    """A fresh SQLite file database per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    register_append_only_listeners()
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    """HTTP client against the app, wired to the test database."""

    async def _get_test_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _get_test_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_maker):
    async def _make(email: str, role: str = ROLE_CUSTOMER, name: str = "Test User", phone: str | None = None) -> User:
        async with session_maker() as session:
            user = User(
                email=email,
                hashed_password=password_helper.hash(PASSWORD),
                name=name,
                phone=phone,
                role=role,
                is_active=True,
                is_superuser=role == ROLE_ADMIN,
                is_verified=True,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
    res = await client.post("/auth/jwt/login", data={"username": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def login_as(client):
    async def _login(email: str, password: str = PASSWORD) -> dict:
        return await login(client, email, password)

    return _login


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user("admin@example.com", ROLE_ADMIN, name="Admin User")


@pytest.fixture
async def staff(make_user) -> User:
    return await make_user("staff@example.com", ROLE_STAFF, name="Staff User")


@pytest.fixture
async def customer_user(make_user) -> User:
    return await make_user("john.doe@example.com", ROLE_CUSTOMER, name="John Doe", phone="+90 555 123 4567")


@pytest.fixture
async def admin_headers(client, admin) -> dict:
    return await login(client, admin.email)


@pytest.fixture
async def staff_headers(client, staff) -> dict:
    return await login(client, staff.email)


@pytest.fixture
async def customer_headers(client, customer_user) -> dict:
    return await login(client, customer_user.email)


@pytest.fixture
def make_tire(session_maker, admin):
    """Create a tire whose initial stock is logged like in the app."""

    async def _make(
        name: str = "Michelin Pilot Sport 4",
        brand: str = "Michelin",
        size: str = "205/55R16",
        season: str = "SUMMER",
        price: str = "2500.00",
        stock: int = 20,
    ) -> Tire:
        async with session_maker() as session:
            t = Tire(name=name, brand=brand, size=size, season=season, price=Decimal(price), stock_quantity=0)
            session.add(t)
            await session.flush()
            if stock:
                await apply_stock_change(session, tire_id=t.id, delta=stock, reason="Initial stock", actor_id=admin.id)
            await session.commit()
            await session.refresh(t)
            return t

    return _make


@pytest.fixture
def make_service(session_maker):
    async def _make(name: str = "Wheel Alignment", price: str = "200.00", duration_minutes: int = 90) -> Service:
        async with session_maker() as session:
            s = Service(
                name=name,
                description=f"{name} service",
                price=Decimal(price),
                duration_minutes=duration_minutes,
            )
            session.add(s)
            await session.commit()
            await session.refresh(s)
            return s

    return _make
