"""User database table models."""

from sqlalchemy import Boolean, Column, String
from sqlmodel import Field

from iam_bridge.entities._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for local users.

    `last_refresh` is stored as an ISO-8601 string.
    """

    username: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True, unique=True)
    )
    name: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    iam_uid: str | None = Field(
        default=None, sa_column=Column(String(512), nullable=True, index=True)
    )
    last_refresh: str | None = Field(
        default=None, sa_column=Column(String(64), nullable=True)
    )


class UserEmailTable(EntityTable, table=True):
    """Every address of every user, primary and secondary.

    The unique index on `email` is what keeps an address owned by at most one
    account.
    """

    user_id: str = Field(foreign_key="usertable.id", index=True)
    email: str = Field(sa_column=Column(String(320), nullable=False, unique=True))
    primary: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, default=False)
    )
