"""Secret service — single-use, time-limited storage of opaque payloads.

Every operation is expressed as one SQL statement so the database, not this
process, decides which caller wins a race:

- ``put_secret``     INSERT, rejected by the primary key on id reuse
- ``consume_secret`` DELETE (or UPDATE in ``mark`` mode) ... RETURNING payload,
                     guarded by "unconsumed and unexpired"
- ``sweep_secrets``  batch DELETE of expired or consumed rows

Payloads are treated as opaque bytes; nothing here decodes or decrypts them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from burnnote.config import settings
from burnnote.models.secret import REFERENCE_ID_MAX_LENGTH, Secret
from burnnote.utils.ids import generate_reference_id

logger = logging.getLogger(__name__)


# ── Errors ──────────────────────────────────────────────────────────


class SecretStoreError(Exception):
    """Base class for secret store failures."""


class DuplicateID(SecretStoreError):
    """A row with this reference id already exists (live or dead)."""

    def __init__(self, reference_id: str) -> None:
        super().__init__(f"Reference id already in use: {reference_id}")
        self.reference_id = reference_id


class PayloadTooLarge(SecretStoreError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Payload of {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


class SecretNotFound(SecretStoreError):
    """No live secret for this id: never created, already consumed, or expired."""

    def __init__(self, reference_id: str) -> None:
        super().__init__("Secret not found")
        self.reference_id = reference_id


class StoreUnavailable(SecretStoreError):
    """The database is unreachable or the outcome of a write is unknown."""


def _is_unavailable(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in the secrets table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ── Store operations ────────────────────────────────────────────────


async def put_secret(
    db: AsyncSession, reference_id: str, payload: bytes, ttl: timedelta
) -> Secret:
    if not reference_id:
        raise ValueError("reference_id must not be empty")
    if len(reference_id) > REFERENCE_ID_MAX_LENGTH:
        raise ValueError(f"reference_id longer than {REFERENCE_ID_MAX_LENGTH} characters")
    if not payload:
        raise ValueError("payload must not be empty")
    if ttl <= timedelta(0):
        raise ValueError("ttl must be positive")
    if len(payload) > settings.max_payload_bytes:
        raise PayloadTooLarge(len(payload), settings.max_payload_bytes)

    now = utcnow()
    values = {
        "reference_id": reference_id,
        "payload": bytes(payload),
        "created_at": now,
        "expires_at": now + ttl,
        "consumed": False,
    }
    # Core INSERT keeps the row out of the session's identity map
    try:
        await db.execute(insert(Secret).values(**values))
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateID(reference_id) from exc
    except (DBAPIError, OSError) as exc:
        if _is_unavailable(exc):
            raise StoreUnavailable("Could not store secret") from exc
        raise
    return Secret(**values)


async def consume_secret(db: AsyncSession, reference_id: str) -> bytes:
    """Return the payload and burn the secret, atomically.

    Of any number of concurrent callers for the same id, exactly one gets the
    payload; the rest get ``SecretNotFound``. If the statement was sent but its
    commit could not be confirmed, ``StoreUnavailable`` is raised instead.
    """
    live = (
        Secret.reference_id == reference_id,
        Secret.consumed.is_(False),
        Secret.expires_at > utcnow(),
    )
    if settings.burn_mode == "mark":
        stmt = update(Secret).where(*live).values(consumed=True)
    else:
        stmt = delete(Secret).where(*live)
    stmt = stmt.returning(Secret.payload).execution_options(synchronize_session=False)

    try:
        result = await db.execute(stmt)
        payload = result.scalar_one_or_none()
        await db.commit()
    except (DBAPIError, OSError) as exc:
        if _is_unavailable(exc):
            raise StoreUnavailable("Could not determine whether the secret was consumed") from exc
        raise

    if payload is None:
        raise SecretNotFound(reference_id)
    logger.debug("Consumed secret %s", reference_id)
    return bytes(payload)


async def secret_exists(db: AsyncSession, reference_id: str) -> bool:
    """Best-effort check whether any row, live or dead, still carries this id.

    Informational only (lets callers tell "never existed" from "gone"); it must
    never be used to decide whether a payload is released.
    """
    try:
        result = await db.execute(
            select(Secret.reference_id).where(Secret.reference_id == reference_id)
        )
    except (DBAPIError, OSError) as exc:
        if _is_unavailable(exc):
            raise StoreUnavailable("Could not look up secret") from exc
        raise
    return result.scalar_one_or_none() is not None


async def sweep_secrets(db: AsyncSession) -> int:
    """Delete every expired or consumed row; return how many were removed."""
    stmt = (
        delete(Secret)
        .where(or_(Secret.expires_at <= utcnow(), Secret.consumed.is_(True)))
        .execution_options(synchronize_session=False)
    )
    try:
        result = await db.execute(stmt)
        await db.commit()
    except (DBAPIError, OSError) as exc:
        if _is_unavailable(exc):
            raise StoreUnavailable("Could not sweep secrets") from exc
        raise
    return result.rowcount


async def create_secret(
    db: AsyncSession, payload: bytes, ttl: timedelta | None = None
) -> Secret:
    """Store ``payload`` under a freshly generated reference id.

    Retries with a new id on collision, up to ``id_generation_attempts`` times.
    """
    ttl = settings.secret_ttl if ttl is None else ttl
    attempts = max(1, settings.id_generation_attempts)
    for attempt in range(1, attempts + 1):
        try:
            secret = await put_secret(db, generate_reference_id(), payload, ttl)
            break
        except DuplicateID:
            logger.warning("Reference id collision (attempt %d/%d)", attempt, attempts)
            if attempt == attempts:
                raise

    logger.debug("Created secret %s expiring at %s", secret.reference_id, secret.expires_at)
    return secret
