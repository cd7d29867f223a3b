import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from firstgoal import db
from firstgoal.errors import ProfileNotFound, UpstreamFailure
from firstgoal.models import Profile, User

logger = logging.getLogger(__name__)

MAX_PROVISION_ATTEMPTS = 50


def sanitize_username(text):
    """Keep letters, digits, dots, underscores and hyphens"""
    cleaned = re.sub(r"[^a-zA-Z0-9_.-]", "", (text or "").strip())
    return cleaned[:60] or "player"


class ProfileService:
    """Maps users to display usernames, provisioning a profile on first access"""

    def resolve_username(self, user_id):
        profile = Profile.query.filter_by(user_id=user_id).first()
        if profile is not None:
            return profile.username

        user = db.session.get(User, user_id)
        if user is None:
            raise ProfileNotFound(user_id)
        return self.provision(user).username

    def provision(self, user, desired_username=None):
        """
        Create the user's profile from desired_username or their email's
        local part, appending 2, 3, ... until the name is free.
        """
        base = sanitize_username(desired_username or user.email_local_part)

        for attempt in range(1, MAX_PROVISION_ATTEMPTS + 1):
            candidate = base if attempt == 1 else f"{base}{attempt}"
            if Profile.query.filter_by(username=candidate).first() is not None:
                continue

            profile = Profile(user_id=user.id, username=candidate)
            db.session.add(profile)
            try:
                db.session.commit()
            except IntegrityError:
                # Lost a race for the name, or the profile appeared meanwhile
                db.session.rollback()
                existing = Profile.query.filter_by(user_id=user.id).first()
                if existing is not None:
                    return existing
                continue
            except SQLAlchemyError as e:
                db.session.rollback()
                raise UpstreamFailure("Failed to create profile", cause=e) from e

            logger.info(f"Provisioned profile '{candidate}' for user {user.id}")
            return profile

        raise UpstreamFailure(f"Could not find a free username based on '{base}'")
