"""Authentication input and result models."""

from typing import Any

from pydantic import BaseModel, Field

from iam_bridge.entities.core.user.entity import LocalUser


class AuthToken(BaseModel):
    """What the OAuth2 client hands over after the provider callback."""

    id_token: str = Field(description="Raw ID token")
    nonce: str | None = Field(default=None, description="Nonce the token must carry")
    session: dict[str, Any] = Field(
        default_factory=dict, description="Authentication session context"
    )


class AuthResult(BaseModel):
    """Authentication result consumed by the external auth framework."""

    email: str | None = None
    email_valid: bool = False
    user: LocalUser | None = None
    name: str | None = None
    extra_data: dict[str, Any] = Field(default_factory=dict)
    failed: bool = False
    failed_reason: str | None = None

    def public_dict(self) -> dict[str, Any]:
        """JSON-safe view without the full user record."""
        if self.failed:
            return {"failed": True, "failed_reason": self.failed_reason}
        return {
            "email": self.email,
            "email_valid": self.email_valid,
            "user_id": self.user.id if self.user else None,
            "name": self.name,
            "extra_data": self.extra_data,
        }
