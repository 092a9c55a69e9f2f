from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTableUUID
from sqlalchemy.orm import Mapped, mapped_column

from ivc.database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Admin account; only superusers reach /api/admin."""

    __tablename__ = "users"
    full_name: Mapped[str | None] = mapped_column(default=None)
