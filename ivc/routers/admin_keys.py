"""Admin JSON API for stored third-party API keys (always masked)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ivc.auth import current_admin_user
from ivc.database import get_db
from ivc.models.settings import APIKey
from ivc.schemas.api_key import APIKeyCreate, APIKeyOut, APIKeyUpdate
from ivc.security import limiter
from ivc.services import api_keys

router = APIRouter(
    prefix="/api/admin/api-keys",
    tags=["admin"],
    dependencies=[Depends(current_admin_user)],
)


def _get_or_404(db: Session, key_id: int) -> APIKey:
    key = db.get(APIKey, key_id)
    if key is None:
        raise HTTPException(status_code=404, detail="API key not found")
    return key


@router.get("", response_model=list[APIKeyOut])
@limiter.limit("30/minute")
def list_keys(request: Request, db: Session = Depends(get_db)):
    return api_keys.list_keys(db)


@router.post("", response_model=APIKeyOut, status_code=201)
@limiter.limit("10/minute")
def create_key(request: Request, payload: APIKeyCreate, db: Session = Depends(get_db)):
    return api_keys.to_out(api_keys.create_key(db, payload))


@router.put("/{key_id}", response_model=APIKeyOut)
@limiter.limit("10/minute")
def update_key(
    request: Request,
    key_id: int,
    payload: APIKeyUpdate,
    db: Session = Depends(get_db),
):
    key = _get_or_404(db, key_id)
    return api_keys.to_out(api_keys.update_key(db, key, payload))


@router.delete("/{key_id}")
@limiter.limit("10/minute")
def delete_key(request: Request, key_id: int, db: Session = Depends(get_db)):
    api_keys.delete_key(db, _get_or_404(db, key_id))
    return {"success": True}
