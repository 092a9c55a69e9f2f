"""Admin authentication: fastapi-users with a JWT carried in an HttpOnly cookie.

There is no registration route. The single superuser is created from
settings by :mod:`ivc.bootstrap` (on startup and via ``tools/create_admin_user.py``).
"""

import logging
import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Request, Response
from fastapi_users import FastAPIUsers, InvalidPasswordException, UUIDIDMixin
from fastapi_users.authentication import (
    AuthenticationBackend,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users.manager import BaseUserManager
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from ivc.config import settings
from ivc.database_async import get_async_session
from ivc.models.user import User
from ivc.schemas.user import UserCreate

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AdminManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.secret_key
    verification_token_secret = settings.secret_key

    async def validate_password(
        self, password: str, user: UserCreate | User
    ) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordException(
                reason=f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if user.email.split("@")[0].lower() in password.lower():
            raise InvalidPasswordException(
                reason="Password should not contain the e-mail address"
            )

    async def on_after_login(
        self,
        user: User,
        request: Request | None = None,
        response: Response | None = None,
    ) -> None:
        client = request.client.host if request and request.client else None
        logger.info("Admin login", extra={"user_id": str(user.id), "client": client})


async def get_user_db(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[SQLAlchemyUserDatabase[User, uuid.UUID]]:
    yield SQLAlchemyUserDatabase(session, User)


async def get_user_manager(
    user_db: SQLAlchemyUserDatabase[User, uuid.UUID] = Depends(get_user_db),
) -> AsyncGenerator[AdminManager]:
    yield AdminManager(user_db)


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(
        secret=settings.secret_key,
        lifetime_seconds=settings.jwt_lifetime_seconds,
    )


auth_backend = AuthenticationBackend(
    name="admin-cookie",
    transport=CookieTransport(
        cookie_name=settings.auth_cookie_name,
        cookie_max_age=settings.jwt_lifetime_seconds,
        cookie_secure=settings.is_production,
        cookie_samesite="lax",
    ),
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

# Every admin route depends on this; only an active superuser passes
current_admin_user = fastapi_users.current_user(active=True, superuser=True)
