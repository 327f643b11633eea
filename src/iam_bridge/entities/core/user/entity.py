"""Local user domain entity."""

import re
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from iam_bridge.entities._base import Entity

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    """Canonical form used for every email comparison and write."""
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


class LocalUser(Entity):
    """An account in the local user directory.

    The directory store owns the account; the IAM bridge only ever changes
    `secondary_emails`, `iam_uid` and `last_refresh`.
    """

    username: str | None = Field(default=None, description="Local username")
    name: str | None = Field(default=None, description="Display name")
    primary_email: str = Field(description="Canonical email address of the account")
    secondary_emails: set[str] = Field(
        default_factory=set, description="Additional addresses owned by the account"
    )
    iam_uid: str | None = Field(
        default=None, description="Provider subject identifier the profile is linked to"
    )
    last_refresh: datetime | None = Field(
        default=None, description="When the profile data was last pulled from the provider"
    )

    @field_validator("primary_email")
    @classmethod
    def _normalize_primary(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("secondary_emails")
    @classmethod
    def _normalize_secondary(cls, value: set[str]) -> set[str]:
        return {normalize_email(email) for email in value}

    def owns_email(self, email: str) -> bool:
        email = normalize_email(email)
        return email == self.primary_email or email in self.secondary_emails

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, LocalUser):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
