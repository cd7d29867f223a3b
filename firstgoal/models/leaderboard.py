from datetime import datetime, timezone

from firstgoal import db


class LeaderboardEntry(db.Model):
    """Per-user aggregate written only by the scoring transition"""

    __tablename__ = "leaderboard"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False
    )

    correct_predictions = db.Column(db.Integer, default=0, nullable=False)
    total_predictions = db.Column(db.Integer, default=0, nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", backref=db.backref("leaderboard_entry", uselist=False))

    __table_args__ = (db.Index("idx_leaderboard_points", "points"),)

    def __repr__(self):
        return f"<LeaderboardEntry user_id={self.user_id} points={self.points}>"
