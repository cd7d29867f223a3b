import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from firstgoal import db
from firstgoal.errors import (
    DuplicateSubmission,
    GameAlreadyStarted,
    GameNotFound,
    GameNotOpen,
    PlayerNotEligible,
    PlayerNotFound,
    UpstreamFailure,
)
from firstgoal.models import Game, Player, Prediction
from firstgoal.utils.timezone_utils import get_utc_time, is_upcoming

logger = logging.getLogger(__name__)


class PredictionService:
    """Records first-goal picks for upcoming games"""

    def __init__(self, clock=None, next_game_only=True):
        self.clock = clock or get_utc_time
        self.next_game_only = next_game_only

    def submit_prediction(self, user_id, player_id, game_id):
        """
        Record a pick for (user, game).

        The kickoff check reads the store and the clock at call time so a
        submission arriving after the start is refused even if the caller's
        game list is stale. Uniqueness is left to the database constraint.

        Raises:
            GameNotFound, PlayerNotFound, PlayerNotEligible, GameAlreadyStarted,
            GameNotOpen, DuplicateSubmission, UpstreamFailure
        """
        game = db.session.get(Game, game_id)
        if game is None:
            raise GameNotFound(game_id)

        now = self.clock()
        if not is_upcoming(game.game_time, now):
            raise GameAlreadyStarted(
                f"Cannot make predictions after the {game.opponent} game has started"
            )

        if self.next_game_only:
            next_game = (
                Game.query.filter(Game.game_time > now)
                .order_by(Game.game_time)
                .first()
            )
            if next_game is not None and next_game.id != game.id:
                raise GameNotOpen(
                    f"Predictions are open only for the next game ({next_game.matchup})"
                )

        player = db.session.get(Player, player_id)
        if player is None:
            raise PlayerNotFound(player_id)
        if not player.is_active:
            raise PlayerNotEligible(f"{player.name} is not on the active roster")

        prediction = Prediction(
            user_id=user_id, player_id=player_id, game_id=game_id, created_at=now
        )
        db.session.add(prediction)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if self._exists(user_id, game_id):
                raise DuplicateSubmission(
                    "You have already made a prediction for this game", cause=e
                ) from e
            raise UpstreamFailure("Failed to create prediction", cause=e) from e
        except SQLAlchemyError as e:
            db.session.rollback()
            raise UpstreamFailure("Failed to create prediction", cause=e) from e

        logger.info(
            f"Prediction recorded: user {user_id} picked {player.name} vs {game.opponent}"
        )
        return prediction

    def _exists(self, user_id, game_id):
        return (
            Prediction.query.filter_by(user_id=user_id, game_id=game_id).first()
            is not None
        )

    def get_prediction(self, user_id, game_id):
        return Prediction.query.filter_by(user_id=user_id, game_id=game_id).first()

    def list_predictions(self, user_id):
        """A user's predictions, newest game first"""
        return (
            Prediction.query.join(Game)
            .filter(Prediction.user_id == user_id)
            .order_by(Game.game_time.desc())
            .all()
        )

    def can_predict(self, user_id, game):
        """Whether the user may still pick for this game right now"""
        if game is None or not is_upcoming(game.game_time, self.clock()):
            return False
        return not self._exists(user_id, game.id)
