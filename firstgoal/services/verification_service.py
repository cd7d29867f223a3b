"""
Verification and scoring.

A game moves OPEN (verified=False) -> VERIFIED exactly once. The flip, the
correctness marks on every prediction for the game, and the point
adjustments for every predicting user commit together in one transaction.
Cache invalidation runs after the commit and is safe to repeat.
"""

import logging
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from firstgoal import db
from firstgoal.errors import (
    AlreadyVerified,
    FirstGoalError,
    GameNotFound,
    GameNotStarted,
    PlayerNotFound,
    UpstreamFailure,
)
from firstgoal.models import Game, LeaderboardEntry, Player, Prediction
from firstgoal.utils.scoring import (
    DEFAULT_POINTS_CORRECT,
    DEFAULT_POINTS_INCORRECT,
    calculate_prediction_score,
    expected_points,
)
from firstgoal.utils.timezone_utils import get_utc_time, has_started

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    game_id: int
    scoring_player_id: int
    correct_count: int
    incorrect_count: int


class VerificationService:
    def __init__(
        self,
        cache,
        clock=None,
        points_correct=DEFAULT_POINTS_CORRECT,
        points_incorrect=DEFAULT_POINTS_INCORRECT,
    ):
        self.cache = cache
        self.clock = clock or get_utc_time
        self.points_correct = points_correct
        self.points_incorrect = points_incorrect

    def verify_game(self, game_id, scoring_player_id, admin_verified=True):
        """
        Record the first-goal scorer for a game and settle its predictions.

        Args:
            game_id: game to verify
            scoring_player_id: player who scored the team's first goal
            admin_verified: True when an administrator confirmed the scorer

        Raises:
            GameNotFound, PlayerNotFound, AlreadyVerified, GameNotStarted,
            UpstreamFailure. On any failure no state changes.
        """
        game = db.session.get(Game, game_id)
        if game is None:
            raise GameNotFound(game_id)
        if game.verified:
            raise AlreadyVerified(f"The {game.opponent} game is already verified")

        now = self.clock()
        if not has_started(game.game_time, now):
            raise GameNotStarted(
                f"Cannot verify the {game.opponent} game before it starts"
            )

        if db.session.get(Player, scoring_player_id) is None:
            raise PlayerNotFound(scoring_player_id)

        try:
            result = self._apply(game, scoring_player_id, admin_verified, now)
            db.session.commit()
        except FirstGoalError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            raise UpstreamFailure(
                f"Failed to verify the {game.opponent} game", cause=e
            ) from e

        self.invalidate_caches()
        logger.info(
            f"Verified game {game_id} ({game.opponent}): scorer {scoring_player_id}, "
            f"{result.correct_count} correct, {result.incorrect_count} incorrect"
        )
        return result

    def _apply(self, game, scoring_player_id, admin_verified, now):
        # Conditional flip: a concurrent verification leaves rowcount at 0
        flipped = db.session.execute(
            sa.update(Game)
            .where(Game.id == game.id, Game.verified.is_(False))
            .values(verified=True, correct_player_id=scoring_player_id, verified_at=now)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            raise AlreadyVerified(f"The {game.opponent} game is already verified")

        correct_count = incorrect_count = 0
        for prediction in Prediction.query.filter_by(game_id=game.id).all():
            delta = calculate_prediction_score(
                prediction.player_id,
                scoring_player_id,
                self.points_correct,
                self.points_incorrect,
            )
            prediction.is_correct = prediction.player_id == scoring_player_id
            prediction.admin_verified = admin_verified

            if prediction.is_correct:
                correct_count += 1
            else:
                incorrect_count += 1

            self._adjust_points(prediction.user_id, delta, prediction.is_correct, now)

        db.session.flush()
        db.session.refresh(game)
        return VerificationResult(
            game_id=game.id,
            scoring_player_id=scoring_player_id,
            correct_count=correct_count,
            incorrect_count=incorrect_count,
        )

    def _adjust_points(self, user_id, delta, correct, now):
        """In-store increment; the entry is created on a user's first settled pick"""
        updated = db.session.execute(
            sa.update(LeaderboardEntry)
            .where(LeaderboardEntry.user_id == user_id)
            .values(
                points=LeaderboardEntry.points + delta,
                correct_predictions=LeaderboardEntry.correct_predictions
                + (1 if correct else 0),
                total_predictions=LeaderboardEntry.total_predictions + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount == 0:
            db.session.add(
                LeaderboardEntry(
                    user_id=user_id,
                    points=delta,
                    correct_predictions=1 if correct else 0,
                    total_predictions=1,
                    updated_at=now,
                )
            )
            db.session.flush()

    def invalidate_caches(self):
        self.cache.invalidate_prefix("leaderboard")
        self.cache.invalidate("games")

    def audit_leaderboard(self):
        """
        Recompute each user's totals from verified predictions.

        Returns:
            list of dicts describing every user whose stored entry disagrees
        """
        rows = (
            db.session.query(
                Prediction.user_id,
                sa.func.count(Prediction.id),
                sa.func.sum(sa.case((Prediction.is_correct.is_(True), 1), else_=0)),
            )
            .join(Game)
            .filter(Game.verified.is_(True))
            .group_by(Prediction.user_id)
            .all()
        )
        expected = {
            user_id: (int(correct or 0), int(total))
            for user_id, total, correct in rows
        }
        entries = {entry.user_id: entry for entry in LeaderboardEntry.query.all()}

        mismatches = []
        for user_id in sorted(set(expected) | set(entries)):
            correct, total = expected.get(user_id, (0, 0))
            points = expected_points(
                correct, total, self.points_correct, self.points_incorrect
            )
            entry = entries.get(user_id)
            stored = (
                (entry.correct_predictions, entry.total_predictions, entry.points)
                if entry
                else (0, 0, 0)
            )
            if stored != (correct, total, points):
                mismatches.append(
                    {
                        "user_id": user_id,
                        "expected": {"correct": correct, "total": total, "points": points},
                        "stored": {
                            "correct": stored[0],
                            "total": stored[1],
                            "points": stored[2],
                        },
                    }
                )
        return mismatches
