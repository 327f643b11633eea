"""Decoded ID token claims."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IdentityClaims(BaseModel):
    """Verified claims of one ID token, built once per authentication attempt."""

    model_config = ConfigDict(frozen=True)

    subject: str = Field(description="Provider subject, protocol|provider|local-id")
    email: str | None = Field(default=None, description="Email address")
    email_verified: bool = Field(default=False, description="Email verification status")
    name: str | None = Field(default=None, description="Full name")
    issued_at: int = Field(description="Issued at (epoch seconds)")
    expires_at: int = Field(description="Expiration time (epoch seconds)")
    issuer: str | None = Field(default=None, description="Issuer")
    audience: str | list[str] | None = Field(default=None, description="Audience")
    all_claims: dict[str, Any] = Field(
        default_factory=dict, description="All claims as decoded"
    )

    @classmethod
    def from_jwt_payload(cls, payload: dict[str, Any]) -> "IdentityClaims":
        """Create IdentityClaims from a verified JWT payload dictionary."""
        email_verified = payload.get("email_verified", False)
        if isinstance(email_verified, str):
            email_verified = email_verified.lower() == "true"

        return cls(
            subject=payload["sub"],
            email=payload.get("email"),
            email_verified=bool(email_verified),
            name=payload.get("name"),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            issuer=payload.get("iss"),
            audience=payload.get("aud"),
            all_claims=dict(payload),
        )

    @property
    def logout_delay(self) -> int:
        """Lifetime of the token in seconds."""
        return self.expires_at - self.issued_at
