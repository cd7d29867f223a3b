"""HTTP tests for the auth, api and admin blueprints."""

from datetime import timedelta

import pytest

from firstgoal import db
from firstgoal.models import Game, Prediction, Profile, User


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_signup_creates_profile_and_session(client):
    response = client.post(
        "/auth/signup",
        json={"email": "Fan@Example.com", "password": "password123"},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["user"]["email"] == "fan@example.com"
    assert body["user"]["username"] == "fan"
    assert body["user"]["is_admin"] is False

    session = client.get("/auth/session").get_json()
    assert session["authenticated"] is True


def test_signup_with_username_and_admin_email(client):
    response = client.post(
        "/auth/signup",
        json={"email": "admin@example.com", "password": "password123", "username": "boss"},
    )

    assert response.status_code == 201
    assert response.get_json()["user"] == {
        "id": 1, "email": "admin@example.com", "is_admin": True, "username": "boss",
    }


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"email": "not-an-email", "password": "password123"}, "email"),
        ({"email": "fan@example.com", "password": "short"}, "password"),
        ({"email": "fan@example.com", "password": "password123", "username": "a b"}, "username"),
    ],
)
def test_signup_validation(client, payload, field):
    response = client.post("/auth/signup", json=payload)

    assert response.status_code == 400
    body = response.get_json()
    assert body["type"] == "ValidationFailure"
    assert field in body["errors"]
    assert User.query.count() == 0


def test_signup_rejects_taken_email(client, make_user):
    make_user(email="fan@example.com")

    response = client.post(
        "/auth/signup", json={"email": "fan@example.com", "password": "password123"}
    )

    assert response.status_code == 400
    assert "email" in response.get_json()["errors"]


def test_signup_losing_email_race_is_conflict(client, make_user, monkeypatch):
    from firstgoal.forms.auth import SignUpForm

    make_user(email="fan@example.com")
    # Duplicate check passes, as it would for a concurrent request
    monkeypatch.setattr(SignUpForm, "validate_email", lambda self, field: None)

    response = client.post(
        "/auth/signup", json={"email": "fan@example.com", "password": "password123"}
    )

    assert response.status_code == 409
    assert response.get_json()["type"] == "AccountExists"
    assert User.query.count() == 1


def test_signin_provisions_missing_profile(client, make_user):
    user = make_user(email="goalie@example.com")

    response = client.post(
        "/auth/signin", json={"email": "goalie@example.com", "password": "password123"}
    )

    assert response.status_code == 200
    assert Profile.query.filter_by(user_id=user.id).one().username == "goalie"


def test_signin_wrong_password(client, make_user):
    make_user()

    response = client.post(
        "/auth/signin", json={"email": "fan@example.com", "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert response.get_json()["type"] == "AuthenticationFailed"


def test_signout(client, login):
    login()

    assert client.post("/auth/signout").status_code == 200
    assert client.get("/auth/session").get_json()["authenticated"] is False


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------

def test_games_and_next_game(client, make_game):
    make_game(opponent="Vegas Golden Knights", starts_in=timedelta(days=2))
    make_game(opponent="Dallas Stars", starts_in=timedelta(hours=-1))
    make_game(opponent="Minnesota Wild", starts_in=timedelta(hours=4))

    games = client.get("/api/games").get_json()["games"]
    assert [g["opponent"] for g in games] == [
        "Dallas Stars", "Minnesota Wild", "Vegas Golden Knights",
    ]
    assert [g["state"] for g in games] == ["in_progress", "upcoming", "upcoming"]

    next_game = client.get("/api/games/next").get_json()["game"]
    assert next_game["opponent"] == "Minnesota Wild"


def test_next_game_when_none_scheduled(client):
    assert client.get("/api/games/next").get_json() == {"game": None}


def test_game_detail_and_missing_game(client, make_game):
    game = make_game()

    detail = client.get(f"/api/games/{game.id}").get_json()
    assert detail["opponent"] == "Test Team"
    assert detail["state"] == "upcoming"
    assert "my_prediction" not in detail

    missing = client.get("/api/games/999")
    assert missing.status_code == 404
    assert missing.get_json()["type"] == "GameNotFound"


def test_players_lists_active_roster_in_position_order(client, make_player):
    make_player("Alexandar Georgiev", 40, "Goalie")
    make_player("Cale Makar", 8, "Defense")
    make_player("Nathan MacKinnon", 29, "Center")
    make_player("Retired Player", 99, "Center", is_active=False)

    players = client.get("/api/players").get_json()["players"]

    assert [p["name"] for p in players] == [
        "Nathan MacKinnon", "Cale Makar", "Alexandar Georgiev",
    ]


@pytest.mark.parametrize("limit", ["0", "101", "abc"])
def test_leaderboard_limit_validation(client, limit):
    response = client.get(f"/api/leaderboard?limit={limit}")

    if limit == "abc":
        # Non-numeric values fall back to the default limit
        assert response.status_code == 200
    else:
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------

def test_predictions_require_login(client, make_game, make_player):
    game = make_game()
    player = make_player()

    response = client.post("/api/predictions", json={"game_id": game.id, "player_id": player.id})

    assert response.status_code == 401
    assert client.get("/api/predictions").status_code == 401


def test_submit_and_list_prediction(client, login, make_game, make_player):
    login()
    game = make_game()
    player = make_player()

    response = client.post("/api/predictions", json={"game_id": game.id, "player_id": player.id})

    assert response.status_code == 201
    body = response.get_json()["prediction"]
    assert body["player"]["name"] == "Nathan MacKinnon"
    assert body["game"]["opponent"] == "Test Team"

    listed = client.get("/api/predictions").get_json()["predictions"]
    assert [p["game_id"] for p in listed] == [game.id]

    detail = client.get(f"/api/games/{game.id}").get_json()
    assert detail["my_prediction"]["player_id"] == player.id
    assert detail["can_predict"] is False


def test_duplicate_prediction_is_conflict(client, login, make_game, make_player):
    login()
    game = make_game()
    first = make_player()
    second = make_player("Cale Makar", 8, "Defense")

    client.post("/api/predictions", json={"game_id": game.id, "player_id": first.id})
    response = client.post("/api/predictions", json={"game_id": game.id, "player_id": second.id})

    assert response.status_code == 409
    assert response.get_json()["type"] == "DuplicateSubmission"
    assert Prediction.query.count() == 1


def test_prediction_after_start_is_rejected(client, login, make_game, make_player, clock):
    login()
    game = make_game()
    player = make_player()
    clock.advance(minutes=31)

    response = client.post("/api/predictions", json={"game_id": game.id, "player_id": player.id})

    assert response.status_code == 422
    assert response.get_json()["type"] == "GameAlreadyStarted"
    assert Prediction.query.count() == 0


def test_prediction_missing_fields(client, login):
    login()

    response = client.post("/api/predictions", json={"game_id": 1})

    assert response.status_code == 400
    assert "player_id" in response.get_json()["errors"]


def test_profile(client, login):
    login(username="avsfan")

    profile = client.get("/api/profile").get_json()

    assert profile["username"] == "avsfan"
    assert profile["points"] == 0
    assert profile["total_predictions"] == 0


def test_csrf_token_endpoint(client):
    assert client.get("/api/csrf-token").get_json()["csrf_token"]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@pytest.fixture
def admin(login):
    return login(email="admin@example.com", is_admin=True)


def test_admin_routes_reject_fans(client, login, make_game):
    login()
    game = make_game()

    assert client.get("/admin/games/unverified").status_code == 403
    assert client.post(f"/admin/games/{game.id}/verify", json={"player_id": 1}).status_code == 403


def test_admin_routes_require_login(client):
    assert client.get("/admin/scheduler").status_code == 401


def test_admin_verify_flow(client, admin, make_game, make_player, clock):
    game = make_game()
    player = make_player()

    early = client.post(f"/admin/games/{game.id}/verify", json={"player_id": player.id})
    assert early.status_code == 422
    assert early.get_json()["type"] == "GameNotStarted"

    clock.advance(hours=1)
    unverified = client.get("/admin/games/unverified").get_json()["games"]
    assert [g["id"] for g in unverified] == [game.id]

    response = client.post(f"/admin/games/{game.id}/verify", json={"player_id": player.id})
    assert response.status_code == 200
    assert response.get_json()["result"]["scoring_player_id"] == player.id

    again = client.post(f"/admin/games/{game.id}/verify", json={"player_id": player.id})
    assert again.status_code == 409
    assert again.get_json()["type"] == "AlreadyVerified"

    db.session.expire_all()
    assert db.session.get(Game, game.id).verified is True
    assert client.get("/admin/games/unverified").get_json()["games"] == []


def test_admin_verify_unknown_player(client, admin, make_game, clock):
    game = make_game()
    clock.advance(hours=1)

    response = client.post(f"/admin/games/{game.id}/verify", json={"player_id": 999})

    assert response.status_code == 404
    assert response.get_json()["type"] == "PlayerNotFound"


def test_admin_scheduler_status_and_actions(client, admin, make_game, clock):
    make_game()
    clock.advance(hours=4)

    status = client.get("/admin/scheduler").get_json()
    assert "stats" in status

    sweep = client.post("/admin/scheduler/action", json={"action": "run_sweep"}).get_json()
    assert sweep["report"]["checked"] == 1
    assert sweep["report"]["completed"] is True

    missing_job = client.post("/admin/scheduler/action", json={"action": "pause_job"})
    assert missing_job.status_code == 400

    unknown = client.post("/admin/scheduler/action", json={"action": "explode"})
    assert unknown.status_code == 400
