from datetime import datetime, timezone

from firstgoal import db


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    opponent = db.Column(db.String(120), nullable=False)
    game_time = db.Column(db.DateTime(timezone=True), nullable=False)
    is_home = db.Column(db.Boolean, default=True, nullable=False)
    location = db.Column(db.String(200))

    # External ID for feed integration
    external_id = db.Column(db.String(50), unique=True, index=True)

    # Verification: OPEN (verified=False) -> VERIFIED (terminal)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    correct_player_id = db.Column(
        db.Integer, db.ForeignKey("players.id"), nullable=True
    )
    verified_at = db.Column(db.DateTime(timezone=True))

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    correct_player = db.relationship("Player", foreign_keys=[correct_player_id])
    predictions = db.relationship(
        "Prediction", backref="game", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("game_time", "opponent", name="unique_game_fixture"),
        db.Index("idx_game_time", "game_time"),
        db.Index("idx_game_verified", "verified"),
        db.CheckConstraint(
            "(verified = true AND correct_player_id IS NOT NULL) OR "
            "(verified = false AND correct_player_id IS NULL)",
            name="verified_has_scorer",
        ),
    )

    def __repr__(self):
        return f"<Game {'vs' if self.is_home else '@'} {self.opponent} {self.game_time}>"

    @property
    def start_time(self):
        """Scheduled start as an aware UTC datetime"""
        from firstgoal.utils.timezone_utils import ensure_utc

        return ensure_utc(self.game_time)

    @property
    def matchup(self):
        return f"{'vs' if self.is_home else '@'} {self.opponent}"

    def format_game_time_local(self, format_str="%a %m/%d at %I:%M %p"):
        """Format game time in the application's timezone"""
        from firstgoal.utils.timezone_utils import format_game_time

        return format_game_time(self.game_time, format_str)

    def to_dict(self):
        return {
            "id": self.id,
            "opponent": self.opponent,
            "game_time": self.start_time.isoformat() if self.game_time else None,
            "is_home": self.is_home,
            "location": self.location,
            "verified": self.verified,
            "correct_player_id": self.correct_player_id,
        }
