from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import (
    DataRequired,
    Email,
    Length,
    Optional,
    Regexp,
    ValidationError,
)

from firstgoal.models import Profile, User


class SignInForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember Me")


class SignUpForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=8, message="Password must be at least 8 characters long"),
        ],
    )
    username = StringField(
        "Username (Optional)",
        validators=[
            Optional(),
            Length(
                min=3, max=60, message="Username must be between 3 and 60 characters"
            ),
            Regexp(
                r"^[a-zA-Z0-9_.-]+$",
                message="Username can only contain letters, numbers, dots, underscores, and hyphens",
            ),
        ],
    )

    def validate_email(self, email):
        if User.query.filter_by(email=email.data.strip().lower()).first():
            raise ValidationError(
                "Email already registered. Please use a different email."
            )

    def validate_username(self, username):
        if username.data and Profile.query.filter_by(username=username.data).first():
            raise ValidationError(
                "Username already exists. Please choose a different username."
            )
