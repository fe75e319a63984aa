"""Secret request/response schemas."""

import base64
import binascii
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class SecretCreate(BaseModel):
    encrypted_secret: str = Field(..., min_length=1)  # base64 ciphertext, opaque to the server

    @field_validator("encrypted_secret")
    @classmethod
    def check_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except binascii.Error as exc:
            raise ValueError("encrypted_secret must be base64-encoded") from exc
        return v

    def payload(self) -> bytes:
        return base64.b64decode(self.encrypted_secret)


class SecretCreated(BaseModel):
    reference_id: str
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # stored timestamps are naive UTC
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v

    model_config = {"from_attributes": True}


class SecretConsumed(BaseModel):
    status: Literal["ok"] = "ok"
    encrypted_secret: str

    @classmethod
    def from_payload(cls, payload: bytes) -> "SecretConsumed":
        return cls(encrypted_secret=base64.b64encode(payload).decode())
