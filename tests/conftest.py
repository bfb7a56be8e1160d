import pytest

from movie_review import create_app
from movie_review.config import TestingConfig
from movie_review.extensions import db
from movie_review.identity import Identity
from movie_review.models.user import User
from movie_review.services import catalog


MOVIE = {
    "title": "Arrival",
    "year": 2016,
    "genre": ["Drama", "Sci-Fi"],
    "director": "Denis Villeneuve",
    "description": "A linguist is recruited to talk to visitors.",
}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Application context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(username, password="secret123"):
    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return Identity.from_user(user)


def create_movie(**overrides):
    data = dict(MOVIE)
    data.update(overrides)
    return catalog.create(data)


def register(client, username, password="secret123"):
    resp = client.post("/auth/register", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()
