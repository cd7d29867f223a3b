"""
Error taxonomy for the First-Goal Pick'em application.

    FirstGoalError
    +-- NotFound             (404) GameNotFound, PlayerNotFound, ProfileNotFound
    +-- Conflict             (409) DuplicateSubmission, AlreadyVerified,
    |                              AccountExists
    +-- PreconditionFailed   (422) GameAlreadyStarted, GameNotStarted,
    |                              PlayerNotEligible, GameNotOpen
    +-- UpstreamFailure      (502) store or feed error, original kept as cause
    +-- ValidationFailure    (400) malformed input, caught before any store call
    +-- AuthenticationFailed (401)

ConfigurationError lives in config.py so the settings module can raise it
without importing the application package.
"""

from config import ConfigurationError  # noqa: F401 - re-exported


class FirstGoalError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self):
        return {"error": self.message, "type": type(self).__name__}


class NotFound(FirstGoalError):
    status_code = 404


class GameNotFound(NotFound):
    def __init__(self, game_id):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


class PlayerNotFound(NotFound):
    def __init__(self, player_id):
        super().__init__(f"Player {player_id} not found")
        self.player_id = player_id


class ProfileNotFound(NotFound):
    def __init__(self, user_id):
        super().__init__(f"No profile for user {user_id}")
        self.user_id = user_id


class Conflict(FirstGoalError):
    status_code = 409


class DuplicateSubmission(Conflict):
    pass


class AlreadyVerified(Conflict):
    pass


class AccountExists(Conflict):
    pass


class PreconditionFailed(FirstGoalError):
    status_code = 422


class GameAlreadyStarted(PreconditionFailed):
    pass


class GameNotStarted(PreconditionFailed):
    pass


class PlayerNotEligible(PreconditionFailed):
    pass


class GameNotOpen(PreconditionFailed):
    """The game is upcoming but is not the next game on the schedule."""


class UpstreamFailure(FirstGoalError):
    status_code = 502


class ValidationFailure(FirstGoalError):
    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class AuthenticationFailed(FirstGoalError):
    status_code = 401
