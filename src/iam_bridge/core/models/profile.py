"""Profile synchronisation models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EmailAddStatus(str, Enum):
    ADDED = "added"
    TAKEN = "taken"


@dataclass(frozen=True)
class EmailAddResult:
    """Outcome of assigning one secondary email to an account."""

    email: str
    status: EmailAddStatus
    owner_id: str | None = None

    @property
    def taken(self) -> bool:
        return self.status is EmailAddStatus.TAKEN


@dataclass
class ReconciliationOutcome:
    applied_secondary_emails: set[str] = field(default_factory=set)
    taken_emails: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Freshness:
    """What the local account knows about its last profile refresh."""

    last_refresh: datetime | None
    uid: str | None


class ProfileAttributes(BaseModel):
    """Attributes of a remote profile record."""

    secondary_emails: list[str] = Field(
        default_factory=list, description="Secondary emails listed by the provider"
    )
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Remaining attributes of the record"
    )

    @classmethod
    def from_remote(
        cls, record: dict[str, Any], secondary_emails_field: str = "secondary_emails"
    ) -> "ProfileAttributes":
        """Map a raw profile record onto typed attributes.

        A missing or null secondary email attribute means no secondary emails.

        Raises:
            ValueError: If the secondary email attribute is neither a list nor a string
        """
        remaining = dict(record)
        emails = remaining.pop(secondary_emails_field, None)
        if emails is None:
            emails = []
        elif isinstance(emails, str):
            emails = [emails]
        elif not isinstance(emails, list):
            raise ValueError(
                f"{secondary_emails_field!r} is a {type(emails).__name__}, not a list"
            )
        return cls(
            secondary_emails=[e for e in emails if isinstance(e, str)],
            extra=remaining,
        )
