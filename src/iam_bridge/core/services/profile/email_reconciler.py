"""Secondary email reconciliation against the remote profile."""

from collections.abc import Iterable

from loguru import logger

from iam_bridge.core.models.profile import ReconciliationOutcome
from iam_bridge.entities.core.user.directory import UserDirectory
from iam_bridge.entities.core.user.entity import LocalUser, normalize_email


class EmailReconciler:
    """Makes an account's secondary emails match the remote list.

    Addresses owned by another account are skipped and reported in
    `taken_emails`; every other remote address is still applied.
    """

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    @staticmethod
    def target_emails(user: LocalUser, remote: Iterable[str]) -> list[str]:
        target: list[str] = []
        for email in remote:
            email = normalize_email(email)
            if email and email != user.primary_email and email not in target:
                target.append(email)
        return target

    def reconcile(self, user: LocalUser, remote: Iterable[str]) -> ReconciliationOutcome:
        target = self.target_emails(user, remote)
        outcome = ReconciliationOutcome()

        for email in sorted(user.secondary_emails - set(target)):
            self._directory.remove_secondary_email(user, email)
            outcome.removed.append(email)

        for email in target:
            if email in user.secondary_emails:
                continue
            result = self._directory.add_secondary_email(user, email)
            if result.taken:
                logger.info(
                    f"Secondary email {email} of user {user.id} is owned by user "
                    f"{result.owner_id}, skipping"
                )
                outcome.taken_emails.append(email)
            else:
                outcome.added.append(email)

        outcome.applied_secondary_emails = set(user.secondary_emails)
        if outcome.added or outcome.removed or outcome.taken_emails:
            logger.debug(
                f"Reconciled emails of user {user.id}: added={outcome.added} "
                f"removed={outcome.removed} taken={outcome.taken_emails}"
            )
        return outcome
