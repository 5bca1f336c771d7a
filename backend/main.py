import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.auth import auth_backend, fastapi_users
from core.config import settings
from core.errors import TireShopError
from core.logging_config import setup_logging
from db.database import create_db_and_tables
from db.immutability import register_append_only_listeners
from routers.appointments import router as appointments_router
from routers.customers import router as customers_router
from routers.me import router as me_router
from routers.services import router as services_router
from routers.tires import router as tires_router
from routers.users import router as users_router
from schemas.users import UserCreate, UserRead, UserUpdate

setup_logging()
register_append_only_listeners()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    logger.info("Database ready")
    yield


app = FastAPI(
    title="Tire Shop API",
    description="API for managing a tire shop's inventory, services and appointments",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TireShopError)
async def tire_shop_error_handler(request: Request, exc: TireShopError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])

# Admin user management goes first so /users/, GET /users/{id} and /users/{id}/role resolve here
app.include_router(users_router, prefix="/users", tags=["users"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Shop routes
app.include_router(tires_router, prefix="/tires", tags=["tires"])
app.include_router(services_router, prefix="/services", tags=["services"])
app.include_router(customers_router, prefix="/customers", tags=["customers"])
app.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
app.include_router(me_router, prefix="/me", tags=["me"])


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
