"""Secret ORM model — one row per single-use secret."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from burnnote.database import Base


REFERENCE_ID_MAX_LENGTH = 64


class Secret(Base):
    __tablename__ = "secrets"
    __table_args__ = (Index("ix_secrets_cleanup", "expires_at", "consumed"),)

    reference_id: Mapped[str] = mapped_column(String(REFERENCE_ID_MAX_LENGTH), primary_key=True)
    payload: Mapped[bytes] = mapped_column(LargeBinary)  # opaque, encrypted client-side
    created_at: Mapped[datetime] = mapped_column(DateTime)  # naive UTC
    expires_at: Mapped[datetime] = mapped_column(DateTime)  # naive UTC
    consumed: Mapped[bool] = mapped_column(Boolean, default=False)
