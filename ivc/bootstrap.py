"""Startup helpers shared by the app lifespan and the CLI tools."""

from __future__ import annotations

import logging

from fastapi_users.exceptions import UserAlreadyExists, UserNotExists

from ivc.auth import get_user_db, get_user_manager
from ivc.config import settings
from ivc.database import Base, engine
from ivc.database_async import AsyncSessionLocal
from ivc.schemas.user import UserCreate

logger = logging.getLogger(__name__)


def init_database() -> None:
    # Importing models registers every table on Base.metadata
    import ivc.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


async def ensure_admin_user(
    email: str | None = None, password: str | None = None
) -> bool:
    """Create the superuser from settings unless it exists. True when created."""
    email = email or settings.admin_username
    password = password or settings.admin_password

    async with AsyncSessionLocal() as session:
        async for user_db in get_user_db(session):
            async for user_manager in get_user_manager(user_db):
                try:
                    await user_manager.get_by_email(email)
                    logger.info("Admin user present", extra={"email": email})
                    return False
                except UserNotExists:
                    pass

                try:
                    await user_manager.create(
                        UserCreate(
                            email=email,
                            password=password,
                            is_superuser=True,
                            is_verified=True,
                        )
                    )
                except UserAlreadyExists:
                    return False
                logger.info("Admin user created", extra={"email": email})
                return True
    return False
