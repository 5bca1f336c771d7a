import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy
from sqlalchemy import select

from core.config import settings
from db.stock_change_log import StockChangeLog
from db.users import User, get_user_db

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ADMIN"
ROLE_STAFF = "STAFF"
ROLE_CUSTOMER = "CUSTOMER"


def role_for_superuser_flag(is_superuser: bool, current_role: str) -> str:
    """The role that matches an is_superuser value; ADMIN and is_superuser move together."""
    if is_superuser:
        return ROLE_ADMIN
    if current_role == ROLE_ADMIN:
        return ROLE_CUSTOMER
    return current_role


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.jwt_secret
    verification_token_secret = settings.jwt_secret

    async def _update(self, user: User, update_dict: Dict[str, Any]) -> User:
        if "is_superuser" in update_dict:
            update_dict = {
                **update_dict,
                "role": role_for_superuser_flag(bool(update_dict["is_superuser"]), user.role),
            }
        return await super()._update(user, update_dict)

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        logger.info("User %s registered as %s", user.id, user.role)

    async def on_after_forgot_password(self, user: User, token: str, request: Optional[Request] = None):
        logger.info("User %s requested a password reset", user.id)

    async def on_before_delete(self, user: User, request: Optional[Request] = None):
        # Stock change logs keep their actor, so such users can only be deactivated
        res = await self.user_db.session.execute(
            select(StockChangeLog.id).where(StockChangeLog.user_id == user.id).limit(1)
        )
        if res.first() is not None:
            logger.warning("Refused to delete user %s: referenced by stock change logs", user.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User has stock change history; deactivate the account instead",
            )


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=settings.jwt_secret, lifetime_seconds=settings.jwt_lifetime_seconds)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)
current_active_superuser = fastapi_users.current_user(active=True, superuser=True)


async def current_staff_user(user: User = Depends(current_active_user)) -> User:
    if not (user.is_superuser or user.role == ROLE_STAFF):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")
    return user


async def current_customer(user: User = Depends(current_active_user)) -> User:
    if user.role != ROLE_CUSTOMER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )
    return user
