from datetime import datetime, timezone

from firstgoal import db


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)

    # Results (meaningful only once the game is verified)
    is_correct = db.Column(db.Boolean)
    admin_verified = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    player = db.relationship("Player", foreign_keys=[player_id])

    # One prediction per user per game, enforced by the store
    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_user_game_prediction"),
        db.Index("idx_prediction_game", "game_id"),
        db.Index("idx_prediction_user", "user_id"),
    )

    def __repr__(self):
        return f"<Prediction user_id={self.user_id} game_id={self.game_id} player_id={self.player_id}>"

    def to_dict(self):
        from firstgoal.utils.timezone_utils import ensure_utc

        return {
            "id": self.id,
            "user_id": self.user_id,
            "player_id": self.player_id,
            "game_id": self.game_id,
            "is_correct": self.is_correct,
            "admin_verified": self.admin_verified,
            "created_at": (
                ensure_utc(self.created_at).isoformat() if self.created_at else None
            ),
            "player": self.player.to_dict() if self.player else None,
            "game": self.game.to_dict() if self.game else None,
        }
