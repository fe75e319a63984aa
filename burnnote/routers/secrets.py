"""Secret create / consume endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from burnnote.database import get_db
from burnnote.schemas.secret import SecretConsumed, SecretCreate, SecretCreated
from burnnote.services import secret_service
from burnnote.services.secret_service import (
    DuplicateID,
    PayloadTooLarge,
    SecretNotFound,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SecretCreated, status_code=201)
async def create_secret(data: SecretCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await secret_service.create_secret(db, data.payload())
    except PayloadTooLarge as exc:
        raise HTTPException(status_code=413, detail=str(exc))
    except DuplicateID:
        raise HTTPException(status_code=409, detail="Could not allocate a unique reference ID")


@router.post("/{reference_id}/consume", response_model=SecretConsumed)
async def consume_secret(reference_id: str, db: AsyncSession = Depends(get_db)):
    try:
        payload = await secret_service.consume_secret(db, reference_id)
    except SecretNotFound:
        # Only picks the error message; the payload decision was made above.
        try:
            exists = await secret_service.secret_exists(db, reference_id)
        except StoreUnavailable as exc:
            logger.debug("Existence check for %s failed: %s", reference_id, exc)
            exists = False
        if exists:
            raise HTTPException(status_code=410, detail="Secret has expired or already been viewed")
        raise HTTPException(status_code=404, detail="Secret not found")
    return SecretConsumed.from_payload(payload)
