from datetime import datetime, timezone

from firstgoal import db

# Display order: forwards, then defense, then goalies
POSITION_ORDER = {
    "Center": 1,
    "Left Wing": 2,
    "Right Wing": 3,
    "Defense": 4,
    "Goalie": 5,
}
POSITIONS = tuple(POSITION_ORDER)

# Feed position codes
POSITION_CODES = {
    "C": "Center",
    "L": "Left Wing",
    "R": "Right Wing",
    "D": "Defense",
    "G": "Goalie",
}


class Player(db.Model):
    __tablename__ = "players"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    first_name = db.Column(db.String(60))
    last_name = db.Column(db.String(60))
    number = db.Column(db.Integer, nullable=False)
    position = db.Column(
        db.Enum(*POSITIONS, name="player_position", native_enum=False),
        nullable=False,
    )

    # Historical players are deactivated, never deleted
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("name", "number", "position", name="unique_player_identity"),
        db.Index("idx_player_active", "is_active"),
    )

    def __repr__(self):
        return f"<Player #{self.number} {self.name}>"

    @property
    def sort_key(self):
        return (POSITION_ORDER.get(self.position, 99), self.number)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "number": self.number,
            "position": self.position,
            "is_active": self.is_active,
        }
