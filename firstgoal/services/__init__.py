"""
Service wiring.

Every service receives the shared ResourceCache and clock explicitly; the
bundle is stored on ``app.extensions`` so request handlers, the scheduler and
the CLI all reach the same instances.
"""

from flask import current_app

from firstgoal.utils.cache_utils import ResourceCache
from firstgoal.utils.timezone_utils import get_utc_time


class Services:
    def __init__(self, app, clock=None, cache=None):
        from firstgoal.services.leaderboard_service import LeaderboardService
        from firstgoal.services.prediction_service import PredictionService
        from firstgoal.services.profile_service import ProfileService
        from firstgoal.services.result_oracles import build_oracle
        from firstgoal.services.roster_service import RosterService
        from firstgoal.services.verification_service import VerificationService
        from firstgoal.utils.data_sync import NHLFeed, RosterSync, ScheduleSync

        cfg = app.config
        self.clock = clock or get_utc_time
        self.cache = cache or ResourceCache(
            clock=self.clock,
            default_ttl=cfg["ROSTER_CACHE_TTL"],
            maxsize=cfg["CACHE_MAX_ENTRIES"],
        )

        self.feed = NHLFeed.from_config(cfg)
        self.roster = RosterService(
            self.cache, clock=self.clock, ttl=cfg["ROSTER_CACHE_TTL"]
        )
        self.profiles = ProfileService()
        self.leaderboard = LeaderboardService(
            self.cache,
            ttl=cfg["LEADERBOARD_CACHE_TTL"],
            default_limit=cfg["LEADERBOARD_DEFAULT_LIMIT"],
        )
        self.predictions = PredictionService(
            clock=self.clock,
            next_game_only=cfg["PREDICTIONS_NEXT_GAME_ONLY"],
        )
        self.verification = VerificationService(
            self.cache,
            clock=self.clock,
            points_correct=cfg["POINTS_CORRECT"],
            points_incorrect=cfg["POINTS_INCORRECT"],
        )
        self.oracle = build_oracle(cfg.get("RESULT_ORACLE", "manual"), feed=self.feed)
        self.roster_sync = RosterSync(self.cache, feed=self.feed)
        self.schedule_sync = ScheduleSync(self.cache, feed=self.feed, clock=self.clock)


def init_services(app, clock=None, cache=None):
    app.extensions["firstgoal"] = Services(app, clock=clock, cache=cache)
    return app.extensions["firstgoal"]


def get_services():
    return current_app.extensions["firstgoal"]
