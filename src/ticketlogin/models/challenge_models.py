"""Second factor challenge models for TicketLogin.

Copyright (c) 2025 TicketLogin. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class TfaMethod(str, Enum):
    """Second factor mechanisms, in selection priority order."""

    WEBAUTHN = "webauthn"
    TOTP = "totp"
    RECOVERY = "recovery"

    def __str__(self) -> str:
        return self.value


class CredentialDescriptor(BaseModel):
    """Allowed credential, with its id still in base64url text."""

    id: str
    type: str = "public-key"
    transports: list[str] | None = None


class PublicKeyRequest(BaseModel):
    """WebAuthn ``publicKey`` request options as sent by the backend."""

    challenge: str
    timeout: int | None = None
    rp_id: str | None = Field(default=None, alias="rpId")
    allow_credentials: list[CredentialDescriptor] = Field(
        default_factory=list, alias="allowCredentials"
    )
    user_verification: str | None = Field(default=None, alias="userVerification")
    extensions: dict[str, Any] | None = None

    class Config:
        """Pydantic configuration."""

        extra = "allow"
        populate_by_name = True


class WebAuthnChallengeData(BaseModel):
    """WebAuthn part of a second factor challenge."""

    public_key: PublicKeyRequest = Field(alias="publicKey")

    class Config:
        """Pydantic configuration."""

        extra = "allow"
        populate_by_name = True


class Challenge(BaseModel):
    """Second factor challenge embedded in a ticket."""

    webauthn: WebAuthnChallengeData | None = None
    totp: bool = False
    recovery: list[str] | None = None

    class Config:
        """Pydantic configuration."""

        extra = "allow"

    @field_validator("recovery", mode="before")
    @classmethod
    def _recovery_ids_as_text(cls, value: Any) -> Any:
        # the backend may send key indices as numbers
        if isinstance(value, list):
            return [str(item) if isinstance(item, int) else item for item in value]
        return value

    @model_validator(mode="before")
    @classmethod
    def _require_known_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not any(
            method.value in data for method in TfaMethod
        ):
            msg = "challenge contains no known second factor"
            raise ValueError(msg)
        return data

    def is_available(self, method: TfaMethod) -> bool:
        """Check whether a method is populated in this challenge."""
        if method is TfaMethod.WEBAUTHN:
            return self.webauthn is not None
        if method is TfaMethod.TOTP:
            return self.totp
        return bool(self.recovery)


class NegotiationResult(BaseModel):
    """Locally accepted second factor proof."""

    method: TfaMethod
    payload: str

    @property
    def proof(self) -> str:
        """Return the method tagged proof string sent as password."""
        return f"{self.method.value}:{self.payload}"
