import logging

from flask import current_app, jsonify
from flask_login import (
    current_user,
    login_required,
    login_user,
    logout_user,
    user_logged_in,
    user_logged_out,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from firstgoal import db, limiter, login_manager
from firstgoal.errors import (
    AccountExists,
    AuthenticationFailed,
    UpstreamFailure,
    ValidationFailure,
)
from firstgoal.forms.auth import SignInForm, SignUpForm
from firstgoal.models import User
from firstgoal.routes.auth import bp
from firstgoal.services import get_services

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


@user_logged_in.connect
def on_signed_in(sender, user, **extra):
    """Every signed-in user gets a profile"""
    username = get_services().profiles.resolve_username(user.id)
    logger.info(f"User {user.id} signed in as '{username}'")


@user_logged_out.connect
def on_signed_out(sender, user, **extra):
    if user is not None and getattr(user, "id", None) is not None:
        logger.info(f"User {user.id} signed out")


@bp.route("/signup", methods=["POST"])
@limiter.limit("5 per hour")
def signup():
    form = SignUpForm()
    if not form.validate_on_submit():
        raise ValidationFailure("Invalid sign-up details", errors=form.errors)

    email = form.email.data.strip().lower()
    user = User(email=email, is_admin=email in current_app.config["ADMIN_EMAILS"])
    user.set_password(form.password.data)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent sign-up for the same email
        db.session.rollback()
        raise AccountExists("An account with this email already exists", cause=e) from e
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamFailure("Failed to create account", cause=e) from e

    get_services().profiles.provision(user, desired_username=form.username.data)
    login_user(user)
    user.update_last_login()
    db.session.commit()

    logger.info(f"New account {user.id} ({'admin' if user.is_admin else 'fan'})")
    return jsonify({"success": True, "user": user.to_dict()}), 201


@bp.route("/signin", methods=["POST"])
@limiter.limit("10 per minute")
def signin():
    form = SignInForm()
    if not form.validate_on_submit():
        raise ValidationFailure("Invalid sign-in details", errors=form.errors)

    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if user is None or not user.check_password(form.password.data):
        raise AuthenticationFailed("Invalid email or password")
    if not user.is_active:
        raise AuthenticationFailed("Your account has been deactivated")

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()
    db.session.commit()

    return jsonify({"success": True, "user": user.to_dict()})


@bp.route("/signout", methods=["POST"])
@login_required
def signout():
    logout_user()
    return jsonify({"success": True})


@bp.route("/session")
def session_info():
    if not current_user.is_authenticated:
        return jsonify({"authenticated": False, "user": None})
    return jsonify({"authenticated": True, "user": current_user.to_dict()})
