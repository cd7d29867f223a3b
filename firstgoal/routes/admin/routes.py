import logging
from dataclasses import asdict
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from firstgoal import limiter
from firstgoal.errors import ValidationFailure
from firstgoal.forms.admin import VerifyGameForm
from firstgoal.routes.admin import bp
from firstgoal.services import get_services
from firstgoal.services.scheduler_service import CompletionSweeper, scheduler_service

logger = logging.getLogger(__name__)


def admin_required(f):
    """Reject signed-in users without admin rights"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(f"Non-admin user {current_user.id} tried {request.path}")
            return jsonify({"error": "Access denied"}), 403
        return f(*args, **kwargs)

    return decorated_function


@bp.route("/games/unverified")
@admin_required
def unverified_games():
    """Started games still waiting for a first-goal scorer, newest first"""
    games = get_services().roster.get_past_unverified_games()
    return jsonify(
        {
            "games": [
                dict(game.to_dict(), prediction_count=game.predictions.count())
                for game in games
            ]
        }
    )


@bp.route("/games/<int:game_id>/verify", methods=["POST"])
@admin_required
@limiter.limit("30 per minute")
def verify_game(game_id):
    form = VerifyGameForm()
    if not form.validate_on_submit():
        raise ValidationFailure("Invalid verification", errors=form.errors)

    result = get_services().verification.verify_game(
        game_id, form.player_id.data, admin_verified=True
    )
    logger.info(f"Admin {current_user.id} verified game {game_id}")
    return jsonify({"success": True, "result": asdict(result)})


@bp.route("/sync/roster", methods=["POST"])
@admin_required
def sync_roster():
    success, message = get_services().roster_sync.sync_roster()
    if success:
        return jsonify({"message": message})
    return jsonify({"error": message}), 502


@bp.route("/sync/schedule", methods=["POST"])
@admin_required
def sync_schedule():
    success, message = get_services().schedule_sync.sync_schedule()
    if success:
        return jsonify({"message": message})
    return jsonify({"error": message}), 502


@bp.route("/scheduler")
@admin_required
def scheduler_status():
    return jsonify(scheduler_service.get_status())


@bp.route("/scheduler/action", methods=["POST"])
@admin_required
def scheduler_action():
    """Handle admin scheduler actions"""
    data = request.get_json(silent=True) or {}
    action = data.get("action")

    if action == "run_sweep":
        services = get_services()
        report = CompletionSweeper(
            services.roster, services.verification, services.oracle
        ).sweep()
        scheduler_service.record_sweep(report)
        return jsonify({"message": "Sweep finished", "report": report.to_dict()})

    elif action in ("pause_job", "resume_job"):
        job_id = data.get("job_id")
        if not job_id:
            raise ValidationFailure("Job ID required", errors={"job_id": ["required"]})

        if action == "pause_job":
            success, message = scheduler_service.pause_job(job_id)
        else:
            success, message = scheduler_service.resume_job(job_id)

        if success:
            return jsonify({"message": message})
        return jsonify({"error": message}), 500

    raise ValidationFailure(f"Unknown action '{action}'", errors={"action": [str(action)]})
