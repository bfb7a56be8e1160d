from .conftest import register


def test_register_logs_in(client):
    user = register(client, "alice")
    assert user["username"] == "alice"

    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.get_json() == user


def test_register_rejects_taken_username(app):
    register(app.test_client(), "alice")
    resp = app.test_client().post("/auth/register", json={"username": "ALICE", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.get_json() == {"message": "Username already taken"}


def test_register_validates_input(client):
    resp = client.post("/auth/register", json={"username": "", "password": "secret123"})
    assert resp.status_code == 400
    resp = client.post("/auth/register", json={"username": "bob", "password": "123"})
    assert resp.status_code == 400


def test_login_and_logout(app):
    register(app.test_client(), "alice")
    client = app.test_client()

    resp = client.post("/auth/login", json={"username": "alice", "password": "wrong-pass"})
    assert resp.status_code == 401
    assert resp.get_json() == {"message": "Invalid credentials"}

    resp = client.post("/auth/login", json={"username": "alice", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.get_json()["username"] == "alice"
    assert client.get("/auth/me").status_code == 200

    assert client.post("/auth/logout").status_code == 204
    assert client.get("/auth/me").status_code == 401


def test_rename_rejects_taken_username(app):
    register(app.test_client(), "alice")
    client = app.test_client()
    register(client, "bob")

    resp = client.put("/auth/me", json={"username": "alice"})
    assert resp.status_code == 400
    assert client.get("/auth/me").get_json()["username"] == "bob"
