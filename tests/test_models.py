from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from firstgoal import db
from firstgoal.models import Game, Player, Prediction

KICKOFF = datetime(2025, 2, 1, 2, 0, tzinfo=timezone.utc)


def test_verified_game_requires_scorer(app):
    db.session.add(Game(opponent="Dallas Stars", game_time=KICKOFF, verified=True))

    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_open_game_cannot_carry_scorer(app, make_player):
    player = make_player()
    db.session.add(
        Game(opponent="Dallas Stars", game_time=KICKOFF, correct_player_id=player.id)
    )

    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_one_prediction_per_user_and_game(app, make_user, make_player, make_game):
    user = make_user()
    player = make_player()
    game = make_game()
    db.session.add(Prediction(user_id=user.id, player_id=player.id, game_id=game.id))
    db.session.commit()

    db.session.add(Prediction(user_id=user.id, player_id=player.id, game_id=game.id))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_fixture_natural_key(app):
    db.session.add(Game(opponent="Dallas Stars", game_time=KICKOFF))
    db.session.commit()

    db.session.add(Game(opponent="Dallas Stars", game_time=KICKOFF))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_player_natural_key(app, make_player):
    make_player("Cale Makar", 8, "Defense")

    db.session.add(Player(name="Cale Makar", number=8, position="Defense"))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_game_serialisation(app, make_game):
    game = make_game(opponent="Dallas Stars", is_home=False)

    data = game.to_dict()

    assert data["opponent"] == "Dallas Stars"
    assert data["game_time"].endswith("+00:00")
    assert game.matchup == "@ Dallas Stars"
