"""Session endpoints: create, list, logout and logout-all."""
from app.features.auth.utils.security import create_access_token
from conftest import API, bearer, make_session, make_user

STAFF = "smith@inst.edu"


def _staff():
    user_id = make_user(STAFF)
    return user_id, create_access_token(user_id, STAFF, "staff")


def test_create_session_with_bearer(client):
    _, token = _staff()

    response = client.post(
        f"{API}/sessions", headers=bearer(token), json={"deviceInfo": {"browser": "firefox"}}
    )

    assert response.status_code == 201
    session = response.json()["session"]
    assert len(session["sessionToken"]) == 64
    assert session["deviceInfo"] == {"browser": "firefox"}
    assert session["isActive"] is True

    profile = client.get(f"{API}/profile", headers={"X-Session-Token": session["sessionToken"]})
    assert profile.status_code == 200


def test_create_session_without_body(client):
    _, token = _staff()
    response = client.post(f"{API}/sessions", headers=bearer(token))
    assert response.status_code == 201
    assert response.json()["session"]["deviceInfo"] is None


def test_create_session_requires_bearer(client):
    user_id, _ = _staff()
    session_token = make_session(user_id)

    response = client.post(f"{API}/sessions", headers={"X-Session-Token": session_token})
    assert response.status_code == 401


def test_create_session_without_credential(client):
    response = client.post(f"{API}/sessions")
    assert response.status_code == 401
    assert response.json()["message"] == "No credential supplied"


def test_list_sessions(client):
    user_id, token = _staff()
    first = make_session(user_id)
    second = make_session(user_id)
    make_session(make_user("jones@inst.edu"))

    response = client.get(f"{API}/sessions", headers=bearer(token))

    assert response.status_code == 200
    tokens = {s["sessionToken"] for s in response.json()["sessions"]}
    assert tokens == {first, second}


def test_logout_revokes_presented_session(client):
    user_id, _ = _staff()
    session_token = make_session(user_id)
    other = make_session(user_id)
    headers = {"X-Session-Token": session_token}

    response = client.post(f"{API}/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out"

    assert client.get(f"{API}/profile", headers=headers).status_code == 401
    assert client.get(f"{API}/profile", headers={"X-Session-Token": other}).status_code == 200


def test_logout_with_bearer_only(client):
    _, token = _staff()
    response = client.post(f"{API}/logout", headers=bearer(token))
    assert response.status_code == 200


def test_logout_all(client):
    user_id, token = _staff()
    tokens = [make_session(user_id) for _ in range(2)]

    response = client.post(f"{API}/logout-all", headers=bearer(token))

    assert response.status_code == 200
    assert response.json()["revoked"] == 2
    for session_token in tokens:
        assert client.get(f"{API}/profile", headers={"X-Session-Token": session_token}).status_code == 401
    assert client.get(f"{API}/sessions", headers=bearer(token)).json()["sessions"] == []
