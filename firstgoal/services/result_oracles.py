"""
Sources the sweeper can ask for a game's first-goal scorer.

An oracle returns a player id, or None when it cannot vouch for a result
yet; None leaves the game open for an administrator.
"""

import logging

from firstgoal.models import Player

logger = logging.getLogger(__name__)


class ResultOracle:
    name = "base"

    def first_goal_scorer(self, game):
        raise NotImplementedError


class ManualConfirmationOracle(ResultOracle):
    """Never decides; every game waits for manual confirmation"""

    name = "manual"

    def first_goal_scorer(self, game):
        return None


class FeedResultOracle(ResultOracle):
    """Reads the official game summary and matches the scorer to the roster"""

    name = "feed"

    def __init__(self, feed):
        self.feed = feed

    def first_goal_scorer(self, game):
        if not game.external_id:
            logger.debug(f"Game {game.id} has no feed id; awaiting manual confirmation")
            return None

        scorer = self.feed.fetch_first_goal_scorer(game.external_id)
        if scorer is None:
            return None

        candidates = Player.query.filter_by(name=scorer["name"], is_active=True).all()
        if scorer.get("number") is not None:
            candidates = [p for p in candidates if p.number == int(scorer["number"])]

        if len(candidates) != 1:
            logger.warning(
                f"Could not match first-goal scorer '{scorer['name']}' for game "
                f"{game.id} ({len(candidates)} roster matches)"
            )
            return None
        return candidates[0].id


ORACLES = {
    ManualConfirmationOracle.name: ManualConfirmationOracle,
    FeedResultOracle.name: FeedResultOracle,
}


def build_oracle(name, feed=None):
    if name == FeedResultOracle.name:
        return FeedResultOracle(feed)
    if name not in ORACLES:
        logger.warning(f"Unknown result oracle '{name}', using manual confirmation")
    return ManualConfirmationOracle()
