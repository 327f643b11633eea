"""SQL-backed user directory."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from iam_bridge.core.models.profile import EmailAddResult, EmailAddStatus
from iam_bridge.entities.core.user.directory import UserDirectory, checked_email
from iam_bridge.entities.core.user.entity import LocalUser, normalize_email
from iam_bridge.entities.core.user.table import UserEmailTable, UserTable


class UserRepository(UserDirectory):
    """Data-access layer for users and their email addresses.

    Every mutating call commits its own transaction, so a failure on one
    address never rolls back an earlier one.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _to_entity(self, row: UserTable) -> LocalUser:
        emails = self._session.exec(
            select(UserEmailTable).where(UserEmailTable.user_id == row.id)
        ).all()
        primary = next(e.email for e in emails if e.primary)
        return LocalUser(
            id=row.id,
            created_at=row.created_at,
            username=row.username,
            name=row.name,
            primary_email=primary,
            secondary_emails={e.email for e in emails if not e.primary},
            iam_uid=row.iam_uid,
            last_refresh=datetime.fromisoformat(row.last_refresh)
            if row.last_refresh
            else None,
        )

    def _email_row(self, email: str) -> UserEmailTable | None:
        statement = select(UserEmailTable).where(UserEmailTable.email == email)
        return self._session.exec(statement).first()

    def get(self, user_id: str) -> LocalUser | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return self._to_entity(row)

    def find_by_email(self, email: str) -> LocalUser | None:
        email_row = self._email_row(normalize_email(email))
        if email_row is None:
            return None
        return self.get(email_row.user_id)

    def create_user(
        self,
        primary_email: str,
        *,
        name: str | None = None,
        username: str | None = None,
        secondary_emails: Iterable[str] = (),
    ) -> LocalUser:
        primary = checked_email(primary_email)
        secondary = {checked_email(email) for email in secondary_emails} - {primary}

        row = UserTable(name=name, username=username)
        self._session.add(row)
        self._session.add(UserEmailTable(user_id=row.id, email=primary, primary=True))
        for email in secondary:
            self._session.add(UserEmailTable(user_id=row.id, email=email))
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ValueError(f"Email or username already in use: {primary}") from e

        logger.debug(f"Created user {row.id} <{primary}>")
        return self._to_entity(row)

    def add_secondary_email(self, user: LocalUser, email: str) -> EmailAddResult:
        email = checked_email(email)

        existing = self._email_row(email)
        if existing is not None:
            if existing.user_id != user.id:
                return EmailAddResult(email, EmailAddStatus.TAKEN, existing.user_id)
            if not existing.primary:
                user.secondary_emails.add(email)
            return EmailAddResult(email, EmailAddStatus.ADDED, user.id)

        self._session.add(UserEmailTable(user_id=user.id, email=email))
        try:
            self._session.commit()
        except IntegrityError:
            # Lost a race with another writer claiming the same address
            self._session.rollback()
            existing = self._email_row(email)
            return EmailAddResult(
                email, EmailAddStatus.TAKEN, existing.user_id if existing else None
            )

        user.secondary_emails.add(email)
        return EmailAddResult(email, EmailAddStatus.ADDED, user.id)

    def remove_secondary_email(self, user: LocalUser, email: str) -> None:
        email = normalize_email(email)
        existing = self._email_row(email)
        if existing is not None and existing.user_id == user.id and not existing.primary:
            self._session.delete(existing)
            self._session.commit()
        user.secondary_emails.discard(email)

    def save_iam_state(self, user: LocalUser, uid: str, last_refresh: datetime) -> None:
        row = self._session.get(UserTable, user.id)
        if row is None:
            raise ValueError(f"User {user.id} not found")
        row.iam_uid = uid
        row.last_refresh = last_refresh.isoformat()
        self._session.add(row)
        self._session.commit()

        user.iam_uid = uid
        user.last_refresh = last_refresh
