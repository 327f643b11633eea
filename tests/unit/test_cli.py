import pytest
from sqlalchemy import StaticPool
from sqlmodel import create_engine
from typer.testing import CliRunner

from iam_bridge.cli import app
from iam_bridge.cli import user_commands
from iam_bridge.core.services import DbSessionService, InMemoryProfileStore
from iam_bridge.entities.core.user import UserRepository
from tests.utils import create_uid

runner = CliRunner()


@pytest.fixture
def db_service(monkeypatch) -> DbSessionService:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    service = DbSessionService(engine=engine)
    service.create_all()
    monkeypatch.setattr(user_commands, "get_db_service", lambda: service)
    return service


@pytest.fixture
def remote(monkeypatch) -> InMemoryProfileStore:
    store = InMemoryProfileStore()
    monkeypatch.setattr(user_commands, "get_profile_store", lambda: store)
    return store


def test_init_db(db_service):
    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0
    assert "Database initialized" in result.output


def test_create_and_show(db_service):
    result = runner.invoke(app, ["create-user", "jdoe@example.com", "--name", "John"])
    assert result.exit_code == 0

    result = runner.invoke(app, ["show", "JDOE@example.com"])
    assert result.exit_code == 0
    assert "jdoe@example.com" in result.output
    assert "never" in result.output


def test_create_duplicate(db_service):
    runner.invoke(app, ["create-user", "jdoe@example.com"])
    result = runner.invoke(app, ["create-user", "jdoe@example.com"])
    assert result.exit_code == 1


def test_show_unknown(db_service):
    result = runner.invoke(app, ["show", "nobody@example.com"])
    assert result.exit_code == 1


def test_refresh_unlinked(db_service, remote):
    runner.invoke(app, ["create-user", "jdoe@example.com"])
    result = runner.invoke(app, ["refresh", "jdoe@example.com"])
    assert result.exit_code == 1
    assert "not linked" in result.output


def test_refresh_linked(db_service, remote):
    uid = create_uid("jdoe")
    with db_service.get_session() as session:
        directory = UserRepository(session)
        user = directory.create_user("jdoe@example.com", username="jdoe")
        directory.save_iam_state(user, uid, user.created_at)
    remote.set_secondary_emails(uid, ["jd@example.net"])

    result = runner.invoke(app, ["refresh", "jdoe@example.com", "--force"])

    assert result.exit_code == 0, result.output
    assert remote.fetch_count == 1
    with db_service.get_session() as session:
        stored = UserRepository(session).find_by_email("jd@example.net")
    assert stored.iam_uid == uid


def test_refresh_fetch_failure(db_service, remote):
    uid = create_uid("jdoe")
    with db_service.get_session() as session:
        directory = UserRepository(session)
        user = directory.create_user("jdoe@example.com", username="jdoe")
        directory.save_iam_state(user, uid, user.created_at)
    remote.fail_with = "unreachable"

    result = runner.invoke(app, ["refresh", "jdoe@example.com", "--force"])

    assert result.exit_code == 1
    assert "Refresh failed" in result.output
