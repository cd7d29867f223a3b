from flask import jsonify, request
from flask_login import current_user, login_required
from flask_wtf.csrf import generate_csrf

from firstgoal import limiter
from firstgoal.errors import ValidationFailure
from firstgoal.forms.picks import PredictionForm
from firstgoal.routes.api import bp
from firstgoal.services import get_services
from firstgoal.utils.timezone_utils import classify_game

MAX_LEADERBOARD_LIMIT = 100


def _refresh_requested():
    return request.args.get("refresh", "").lower() in ("1", "true", "yes")


@bp.route("/csrf-token")
def csrf_token():
    """Token for JSON clients, sent back in the X-CSRFToken header"""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/games")
def games():
    services = get_services()
    now = services.clock()
    schedule = services.roster.get_games(force_refresh=_refresh_requested())
    return jsonify({"games": [game.to_dict(now) for game in schedule]})


@bp.route("/games/next")
def next_game():
    services = get_services()
    game = services.roster.get_next_game(force_refresh=_refresh_requested())
    if game is None:
        return jsonify({"game": None})
    return jsonify({"game": game.to_dict(services.clock())})


@bp.route("/games/<int:game_id>")
def game_detail(game_id):
    services = get_services()
    game = services.roster.get_game(game_id)
    data = game.to_dict()
    data["state"] = classify_game(game.game_time, services.clock()).value
    data["prediction_count"] = game.predictions.count()
    if current_user.is_authenticated:
        prediction = services.predictions.get_prediction(current_user.id, game.id)
        data["my_prediction"] = prediction.to_dict() if prediction else None
        data["can_predict"] = services.predictions.can_predict(current_user.id, game)
    return jsonify(data)


@bp.route("/players")
def players():
    roster = get_services().roster.get_players(force_refresh=_refresh_requested())
    return jsonify({"players": [player.to_dict() for player in roster]})


@bp.route("/leaderboard")
def leaderboard():
    limit = request.args.get("limit", type=int)
    if limit is not None and not 1 <= limit <= MAX_LEADERBOARD_LIMIT:
        raise ValidationFailure(
            f"limit must be between 1 and {MAX_LEADERBOARD_LIMIT}",
            errors={"limit": [str(request.args.get("limit"))]},
        )

    rows = get_services().leaderboard.get_leaderboard(
        limit=limit, force_refresh=_refresh_requested()
    )
    return jsonify({"leaderboard": [row.to_dict() for row in rows]})


@bp.route("/predictions", methods=["GET"])
@login_required
def list_predictions():
    predictions = get_services().predictions.list_predictions(current_user.id)
    return jsonify({"predictions": [p.to_dict() for p in predictions]})


@bp.route("/predictions", methods=["POST"])
@login_required
@limiter.limit("30 per minute")
def submit_prediction():
    form = PredictionForm()
    if not form.validate_on_submit():
        raise ValidationFailure("Invalid prediction", errors=form.errors)

    prediction = get_services().predictions.submit_prediction(
        current_user.id, form.player_id.data, form.game_id.data
    )
    return jsonify({"success": True, "prediction": prediction.to_dict()}), 201


@bp.route("/profile")
@login_required
def profile():
    services = get_services()
    entry = services.leaderboard.get_entry(current_user.id)
    return jsonify(
        {
            "user_id": current_user.id,
            "email": current_user.email,
            "username": services.profiles.resolve_username(current_user.id),
            "is_admin": current_user.is_admin,
            "points": entry.points if entry else 0,
            "correct_predictions": entry.correct_predictions if entry else 0,
            "total_predictions": entry.total_predictions if entry else 0,
        }
    )
