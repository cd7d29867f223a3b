from firstgoal import db  # noqa: F401 - imported for model imports

from .game import Game
from .leaderboard import LeaderboardEntry
from .player import Player
from .prediction import Prediction
from .user import Profile, User

__all__ = [
    "User",
    "Profile",
    "Player",
    "Game",
    "Prediction",
    "LeaderboardEntry",
]
