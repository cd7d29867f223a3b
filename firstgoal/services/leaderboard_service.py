from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from firstgoal import db
from firstgoal.models import LeaderboardEntry, Profile
from firstgoal.utils.cache_utils import cached_query
from firstgoal.utils.timezone_utils import ensure_utc

ANONYMOUS_USERNAME = "Anonymous Player"


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    user_id: int
    username: str
    correct_predictions: int
    total_predictions: int
    points: int
    updated_at: Optional[datetime]

    def to_dict(self):
        data = asdict(self)
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


class LeaderboardService:
    """Ranked projection of LeaderboardEntry rows, never a source of truth"""

    def __init__(self, cache, ttl=30, default_limit=10):
        self.cache = cache
        self.ttl = ttl
        self.default_limit = default_limit

    def get_leaderboard(self, limit=None, force_refresh=False):
        """
        Top entries by points, highest first; ties go to the lower user id.

        Returns the cached tuple while it is younger than the leaderboard TTL.
        """
        if limit is None:
            limit = self.default_limit
        return self._ranked(int(limit), force_refresh=force_refresh)

    @cached_query("leaderboard", "ttl")
    def _ranked(self, limit):
        rows = (
            db.session.query(LeaderboardEntry, Profile.username)
            .outerjoin(Profile, Profile.user_id == LeaderboardEntry.user_id)
            .order_by(LeaderboardEntry.points.desc(), LeaderboardEntry.user_id.asc())
            .limit(limit)
            .all()
        )
        return tuple(
            LeaderboardRow(
                rank=position,
                user_id=entry.user_id,
                username=username or ANONYMOUS_USERNAME,
                correct_predictions=entry.correct_predictions,
                total_predictions=entry.total_predictions,
                points=entry.points,
                updated_at=ensure_utc(entry.updated_at),
            )
            for position, (entry, username) in enumerate(rows, start=1)
        )

    def get_entry(self, user_id):
        """Uncached standing for one user, or None before their first settled pick"""
        return LeaderboardEntry.query.filter_by(user_id=user_id).first()
