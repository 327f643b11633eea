from datetime import datetime, timezone

import pytest

from iam_bridge.core.models.profile import EmailAddStatus
from iam_bridge.exceptions import InvalidEmailError


@pytest.fixture
def alice(directory):
    return directory.create_user(
        "Alice@Example.com", name="Alice", username="alice", secondary_emails=["a2@example.com"]
    )


class TestUserDirectory:
    def test_create_normalises(self, alice):
        assert alice.primary_email == "alice@example.com"
        assert alice.secondary_emails == {"a2@example.com"}

    def test_find_by_primary_or_secondary(self, directory, alice):
        assert directory.find_by_email("ALICE@example.com").id == alice.id
        assert directory.find_by_email("a2@example.com").id == alice.id
        assert directory.find_by_email("nobody@example.com") is None

    def test_get(self, directory, alice):
        assert directory.get(alice.id).username == "alice"
        assert directory.get("missing") is None

    def test_create_rejects_taken_address(self, directory, alice):
        with pytest.raises(ValueError):
            directory.create_user("bob@example.com", username="bob", secondary_emails=["a2@example.com"])

    def test_create_rejects_invalid_address(self, directory):
        with pytest.raises(InvalidEmailError):
            directory.create_user("not-an-email")

    def test_add_secondary(self, directory, alice):
        result = directory.add_secondary_email(alice, "A3@example.com")

        assert result.status is EmailAddStatus.ADDED
        assert "a3@example.com" in alice.secondary_emails
        assert "a3@example.com" in directory.get(alice.id).secondary_emails

    def test_add_address_of_another_account_is_taken(self, directory, alice):
        bob = directory.create_user("bob@example.com", username="bob")

        result = directory.add_secondary_email(bob, "alice@example.com")

        assert result.taken
        assert result.owner_id == alice.id
        assert "alice@example.com" not in directory.get(bob.id).secondary_emails

    def test_add_own_address_is_not_taken(self, directory, alice):
        assert not directory.add_secondary_email(alice, "a2@example.com").taken
        assert not directory.add_secondary_email(alice, "alice@example.com").taken
        assert "alice@example.com" not in directory.get(alice.id).secondary_emails

    def test_add_invalid_address(self, directory, alice):
        with pytest.raises(InvalidEmailError):
            directory.add_secondary_email(alice, "nope")

    def test_remove_secondary_frees_address(self, directory, alice):
        directory.remove_secondary_email(alice, "a2@example.com")

        assert alice.secondary_emails == set()
        assert directory.find_by_email("a2@example.com") is None
        bob = directory.create_user("bob@example.com", username="bob")
        assert not directory.add_secondary_email(bob, "a2@example.com").taken

    def test_primary_is_never_removed(self, directory, alice):
        directory.remove_secondary_email(alice, "alice@example.com")
        assert directory.find_by_email("alice@example.com").id == alice.id

    def test_save_iam_state(self, directory, alice):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        directory.save_iam_state(alice, "github|1", now)

        stored = directory.get(alice.id)
        assert stored.iam_uid == "github|1"
        assert stored.last_refresh == now
        assert alice.last_refresh == now

    def test_primary_dropped_from_stale_secondary_set(self, directory, alice):
        alice.secondary_emails.add("alice@example.com")

        directory.remove_secondary_email(alice, "alice@example.com")

        assert "alice@example.com" not in alice.secondary_emails
        assert directory.get(alice.id).primary_email == "alice@example.com"


class TestUserRepositoryRaces:
    def test_lost_insert_race_reported_as_taken(self, sql_directory, monkeypatch):
        alice = sql_directory.create_user("alice@example.com", username="alice")
        bob = sql_directory.create_user(
            "bob@example.com", username="bob", secondary_emails=["shared@example.com"]
        )
        real_lookup = sql_directory._email_row

        def stale_lookup(email):
            # The other writer's row is not visible yet on the first check
            monkeypatch.setattr(sql_directory, "_email_row", real_lookup)
            return None

        monkeypatch.setattr(sql_directory, "_email_row", stale_lookup)

        result = sql_directory.add_secondary_email(alice, "shared@example.com")

        assert result.taken
        assert result.owner_id == bob.id
        assert "shared@example.com" not in alice.secondary_emails
        assert sql_directory.find_by_email("shared@example.com").id == bob.id

        # The rolled back session keeps working
        assert not sql_directory.add_secondary_email(alice, "a2@example.com").taken
        assert sql_directory.get(alice.id).secondary_emails == {"a2@example.com"}
