"""Stored third-party API keys; secrets never leave the service unmasked."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ivc.models.settings import APIKey
from ivc.schemas.api_key import APIKeyCreate, APIKeyOut, APIKeyUpdate

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

MASK = "••••••••"


def mask_key(value: str) -> str:
    """Keep the first and last four characters of long keys only."""
    if len(value) <= 8:
        return MASK
    return f"{value[:4]}...{value[-4:]}"


def to_out(key: APIKey) -> APIKeyOut:
    return APIKeyOut(
        id=key.id,
        name=key.name,
        provider=key.provider,
        masked_key=mask_key(key.key_value),
        permissions=list(key.permissions or []),
        is_active=key.is_active,
        last_used_at=key.last_used_at,
        created_at=key.created_at,
    )


def list_keys(db: Session) -> list[APIKeyOut]:
    keys = db.query(APIKey).order_by(APIKey.created_at.desc(), APIKey.id.desc()).all()
    return [to_out(k) for k in keys]


def create_key(db: Session, data: APIKeyCreate) -> APIKey:
    key = APIKey(
        name=data.name.strip(),
        provider=data.provider.strip().lower(),
        key_value=data.key_value.strip(),
        permissions=list(data.permissions),
        is_active=data.is_active,
    )
    db.add(key)
    db.commit()
    db.refresh(key)
    logger.info("API key stored", extra={"key_id": key.id, "provider": key.provider})
    return key


def update_key(db: Session, key: APIKey, data: APIKeyUpdate) -> APIKey:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(key, field, value)
    db.commit()
    db.refresh(key)
    return key


def delete_key(db: Session, key: APIKey) -> None:
    db.delete(key)
    db.commit()
    logger.info("API key deleted", extra={"key_id": key.id})
