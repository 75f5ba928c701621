from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField, BooleanField, SubmitField, TextAreaField, SelectField, SelectMultipleField, TimeField
from wtforms.validators import DataRequired, InputRequired, Optional, NumberRange, Length

from app.models.facility import SportType, LocationType

SPORT_CHOICES = [(s.value, s.value) for s in SportType]
LOCATION_CHOICES = [(l.value, l.value) for l in LocationType]


# Create/edit a facility and its court count
class FacilityForm(FlaskForm):
    name = StringField('Facility name', validators=[DataRequired(), Length(max=120)])
    sport_type = SelectField('Sport', choices=SPORT_CHOICES, validators=[DataRequired()])
    location = StringField('Location', validators=[Optional(), Length(max=200)])
    location_type = SelectField('Indoor / Outdoor', choices=LOCATION_CHOICES, default=LocationType.INDOOR.value)
    description = TextAreaField('Description', validators=[Optional()])
    capacity = IntegerField('Capacity', validators=[Optional(), NumberRange(min=0)], default=0)
    open_time = TimeField('Opens at', validators=[Optional()])
    close_time = TimeField('Closes at', validators=[Optional()])
    # One rule per line in the form, stored as a list
    rules = TextAreaField('Rules (one per line)', validators=[Optional()])
    is_multi_sport = BooleanField('Multi-sport facility')
    shared_sports = SelectMultipleField('Shares courts with', choices=SPORT_CHOICES, validators=[Optional()])
    number_of_courts = IntegerField('Number of courts', validators=[DataRequired(), NumberRange(min=1)], default=1)
    active = BooleanField('Active', default=True)
    submit = SubmitField('Save facility')

    def to_dict(self):
        return {
            'name': self.name.data,
            'sport_type': self.sport_type.data,
            'location': self.location.data,
            'location_type': self.location_type.data,
            'description': self.description.data,
            'capacity': self.capacity.data,
            'open_time': self.open_time.data,
            'close_time': self.close_time.data,
            'rules': (self.rules.data or '').splitlines(),
            'is_multi_sport': self.is_multi_sport.data,
            'shared_sports': self.shared_sports.data or [],
            'number_of_courts': self.number_of_courts.data,
            'active': self.active.data,
        }


class HoursForm(FlaskForm):
    open_time = TimeField('Opens at', validators=[DataRequired()])
    close_time = TimeField('Closes at', validators=[DataRequired()])
    submit = SubmitField('Save hours')


# Inventory item for a facility
class EquipmentForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    facility_id = IntegerField('Facility', validators=[DataRequired()])
    qty_total = IntegerField('Total quantity', validators=[InputRequired(message='Total quantity is required.'), NumberRange(min=0)])
    qty_available = IntegerField('Available quantity', validators=[Optional(), NumberRange(min=0)])
    submit = SubmitField('Save equipment')
