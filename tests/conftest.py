from datetime import datetime, timedelta, timezone

import pytest

from firstgoal import create_app, db
from firstgoal.models import Game, Player, Profile, User
from firstgoal.services import get_services

START = datetime(2025, 1, 15, 18, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable "now" shared by the cache and every service"""

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app("testing", clock=clock)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(app):
    def _make_user(email="fan@example.com", password="password123", is_admin=False,
                   username=None):
        user = User(email=email, is_admin=is_admin)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        if username:
            db.session.add(Profile(user_id=user.id, username=username))
            db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_player(app):
    def _make_player(name="Nathan MacKinnon", number=29, position="Center",
                     is_active=True):
        player = Player(name=name, number=number, position=position,
                        is_active=is_active)
        db.session.add(player)
        db.session.commit()
        return player

    return _make_player


@pytest.fixture
def make_game(app, clock):
    def _make_game(opponent="Test Team", starts_in=timedelta(minutes=30),
                   is_home=True, external_id=None):
        game = Game(
            opponent=opponent,
            game_time=clock() + starts_in,
            is_home=is_home,
            location="Ball Arena" if is_home else None,
            external_id=external_id,
        )
        db.session.add(game)
        db.session.commit()
        return game

    return _make_game


# ---------------------------------------------------------------------------
# Client helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def login(client, make_user):
    def _login(email="fan@example.com", password="password123", is_admin=False,
               username=None):
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = make_user(email=email, password=password, is_admin=is_admin,
                             username=username)
        response = client.post(
            "/auth/signin", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.get_json()
        return user

    return _login
