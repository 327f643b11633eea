from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from iam_bridge.api.http.app import create_app
from iam_bridge.api.http.deps import get_authenticator, get_user_directory
from tests.utils import make_id_token


@pytest.fixture
def client(authenticator):
    app = create_app()
    app.dependency_overrides[get_authenticator] = lambda: authenticator
    with_client = TestClient(app, follow_redirects=False)
    yield with_client
    app.dependency_overrides.clear()


def start_login(client, **params) -> dict[str, str]:
    response = client.get("/auth/auth0", params=params)
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    return {key: values[0] for key, values in query.items()}


class TestAuthorizeRedirect:
    def test_redirects_to_provider(self, client):
        response = client.get("/auth/auth0")

        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        assert response.status_code == 302
        assert f"{location.scheme}://{location.netloc}{location.path}" == (
            "https://auth.test/authorize"
        )
        assert query["action"] == ["signup"]
        assert query["response_type"] == ["id_token"]
        assert query["response_mode"] == ["form_post"]
        assert query["scope"] == ["openid name email"]
        assert "prompt" not in query
        assert client.cookies.get("iam_auth_state") == query["state"][0]
        assert client.cookies.get("iam_auth_nonce") == query["nonce"][0]

    def test_prompt_and_action_pass_through(self, client):
        query = start_login(client, prompt="login", action="login")

        assert query["prompt"] == "login"
        assert query["action"] == "login"

    def test_needs_no_database(self):
        app = create_app()

        def no_directory():
            raise AssertionError("authorize must not open a user directory")

        app.dependency_overrides[get_user_directory] = no_directory
        response = TestClient(app, follow_redirects=False).get("/auth/auth0")

        assert response.status_code == 302
        assert "action=signup" in response.headers["location"]

    def test_unknown_provider(self, client):
        assert client.get("/auth/github").status_code == 404


class TestCallback:
    def test_without_params_restarts_login(self, client):
        response = client.get("/auth/auth0/callback")

        assert response.status_code == 302
        assert response.headers["location"] == "/auth/auth0?prompt=login"

    def test_with_params_but_no_state_is_csrf(self, client):
        response = client.get("/auth/auth0/callback", params={"code": "abc"})

        assert response.status_code == 302
        assert response.headers["location"] == (
            "/auth/failure?message=csrf_detected&strategy=auth0"
        )

    def test_state_mismatch(self, client):
        start_login(client)

        response = client.post(
            "/auth/auth0/callback", data={"state": "forged", "id_token": make_id_token()}
        )

        assert response.status_code == 302
        assert "csrf_detected" in response.headers["location"]

    def test_successful_sign_in(self, client, jdoe, session_policy):
        query = start_login(client)
        token = make_id_token(email=jdoe.primary_email, nonce=query["nonce"])

        response = client.post(
            "/auth/auth0/callback", data={"state": query["state"], "id_token": token}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["user_id"] == jdoe.id
        assert body["email_valid"] is True
        assert body["extra_data"] == {"uid": "ad|Mozilla-LDAP|jdoe"}
        assert "last_refresh" in body["session"]["iam"]
        assert session_policy.current == 900

    def test_nonce_must_match(self, client):
        query = start_login(client)
        token = make_id_token(nonce="replayed")

        response = client.post(
            "/auth/auth0/callback", data={"state": query["state"], "id_token": token}
        )

        assert response.status_code == 401
        assert response.json()["failed"] is True

    def test_secondary_email_sign_in(self, client, jdoe):
        query = start_login(client)
        token = make_id_token(email="john@example.org", nonce=query["nonce"])

        response = client.post(
            "/auth/auth0/callback", data={"state": query["state"], "id_token": token}
        )

        assert response.status_code == 401
        assert "jdoe@example.com" in response.json()["failed_reason"]


def test_failure_page(client):
    response = client.get(
        "/auth/failure", params={"message": "csrf_detected", "strategy": "auth0"}
    )

    assert response.status_code == 401
    assert response.json() == {
        "failed": True,
        "message": "csrf_detected",
        "strategy": "auth0",
    }
