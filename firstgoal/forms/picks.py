from flask_wtf import FlaskForm
from wtforms import IntegerField
from wtforms.validators import InputRequired, NumberRange


class PredictionForm(FlaskForm):
    game_id = IntegerField("Game", validators=[InputRequired(), NumberRange(min=1)])
    player_id = IntegerField("Player", validators=[InputRequired(), NumberRange(min=1)])
