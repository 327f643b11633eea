import pytest

from iam_bridge.core.services.profile.email_reconciler import EmailReconciler
from iam_bridge.exceptions import InvalidEmailError

PRIMARY = "p@example.com"
A = "a@example.com"
B = "b@example.com"
D = "d@example.com"
X = "x@example.com"


@pytest.fixture
def user(directory):
    return directory.create_user(PRIMARY, username="p", secondary_emails=[A, B])


@pytest.fixture
def reconciler(directory):
    return EmailReconciler(directory)


def stored_secondaries(directory, user):
    return directory.get(user.id).secondary_emails


class TestReconcile:
    def test_unchanged_remote_is_a_no_op(self, directory, reconciler, user):
        outcome = reconciler.reconcile(user, [A, B])

        assert outcome.added == [] and outcome.removed == []
        assert user.secondary_emails == {A, B}
        assert stored_secondaries(directory, user) == {A, B}

    def test_empty_remote_clears_secondaries(self, directory, reconciler, user):
        outcome = reconciler.reconcile(user, [])

        assert sorted(outcome.removed) == [A, B]
        assert user.secondary_emails == set()
        assert stored_secondaries(directory, user) == set()

    def test_adds_and_removes(self, directory, reconciler, user):
        outcome = reconciler.reconcile(user, [B, D])

        assert outcome.added == [D]
        assert outcome.removed == [A]
        assert outcome.applied_secondary_emails == {B, D}
        assert stored_secondaries(directory, user) == {B, D}

    def test_email_owned_by_another_account_is_skipped(
        self, directory, reconciler, user
    ):
        directory.create_user(D, username="d")

        outcome = reconciler.reconcile(user, [B, D])

        assert outcome.taken_emails == [D]
        assert user.secondary_emails == {B}
        assert stored_secondaries(directory, user) == {B}

    def test_primary_is_never_added(self, directory, reconciler, user):
        outcome = reconciler.reconcile(user, [PRIMARY, X])

        assert user.secondary_emails == {X}
        assert PRIMARY not in stored_secondaries(directory, user)
        assert outcome.taken_emails == []

    def test_taken_secondary_of_another_account(self, directory, reconciler, user):
        directory.create_user("other@example.com", username="o", secondary_emails=[D])

        outcome = reconciler.reconcile(user, [A, D, X])

        assert outcome.taken_emails == [D]
        assert user.secondary_emails == {A, X}

    def test_idempotent(self, directory, reconciler, user):
        directory.create_user(D, username="d")
        reconciler.reconcile(user, [B, D, X])
        first = set(user.secondary_emails)

        outcome = reconciler.reconcile(user, [B, D, X])

        assert user.secondary_emails == first
        assert outcome.added == [] and outcome.removed == []

    def test_normalises_and_deduplicates(self, directory, reconciler, user):
        outcome = reconciler.reconcile(user, [" B@Example.com ", B, "", "X@EXAMPLE.COM"])

        assert outcome.added == [X]
        assert user.secondary_emails == {B, X}

    def test_invalid_email_is_fatal_after_earlier_mutations(
        self, directory, reconciler, user
    ):
        with pytest.raises(InvalidEmailError):
            reconciler.reconcile(user, [X, "not-an-email"])

        # Each mutation is its own transaction: X stays, A and B were removed
        assert stored_secondaries(directory, user) == {X}


@pytest.mark.parametrize(
    "remote,taken_by_others",
    [
        ([A, D, X], {D}),
        ([PRIMARY, D], {D}),
        ([B, X, "y@example.com"], {"y@example.com", X}),
        ([], set()),
    ],
)
def test_result_is_remote_minus_primary_minus_taken(
    directory, reconciler, user, remote, taken_by_others
):
    for i, email in enumerate(sorted(taken_by_others)):
        directory.create_user(email, username=f"owner{i}")

    outcome = reconciler.reconcile(user, remote)

    expected = set(remote) - {PRIMARY} - taken_by_others
    assert user.secondary_emails == expected
    assert stored_secondaries(directory, user) == expected
    assert set(outcome.taken_emails) == taken_by_others
    assert PRIMARY not in user.secondary_emails
