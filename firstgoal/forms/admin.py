from flask_wtf import FlaskForm
from wtforms import IntegerField
from wtforms.validators import InputRequired, NumberRange


class VerifyGameForm(FlaskForm):
    player_id = IntegerField(
        "First goal scorer", validators=[InputRequired(), NumberRange(min=1)]
    )
