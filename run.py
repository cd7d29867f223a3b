from firstgoal import create_app, db
from firstgoal.models import Game, LeaderboardEntry, Player, Prediction, Profile, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Profile": Profile,
        "Player": Player,
        "Game": Game,
        "Prediction": Prediction,
        "LeaderboardEntry": LeaderboardEntry,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
