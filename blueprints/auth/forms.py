"""
Authentication forms using Flask-WTF.
Provides login, registration and password forms with CSRF protection.
JSON requests are wrapped into form data by Flask-WTF, so the same forms
validate API payloads.
"""

from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SelectField
from wtforms.validators import DataRequired, Email, Length, EqualTo, Optional, Regexp

PASSWORD_VALIDATORS = [
    DataRequired(message='Password is required'),
    Length(min=8, message='Password must be at least 8 characters'),
    Regexp(r'(?=.*[A-Z])', message='Password must contain an uppercase letter'),
    Regexp(r'(?=.*[a-z])', message='Password must contain a lowercase letter'),
    Regexp(r'(?=.*\d)', message='Password must contain a digit'),
]


class LoginForm(FlaskForm):
    """Login with username or email."""

    username = StringField('Username or email', validators=[
        DataRequired(message='Username is required')
    ])

    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required')
    ])

    remember_me = BooleanField('Remember me')


class RegisterForm(FlaskForm):
    """Client self-registration."""

    username = StringField('Username', validators=[
        DataRequired(message='Username is required'),
        Length(min=3, max=50)
    ])

    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Invalid email format')
    ])

    password = PasswordField('Password', validators=PASSWORD_VALIDATORS)

    full_name = StringField('Full name', validators=[Optional(), Length(max=200)])

    phone = StringField('Phone', validators=[Optional(), Length(max=50)])

    locale = SelectField('Language', choices=[('fr', 'Français'), ('en', 'English'), ('ar', 'العربية')],
                         default='fr', validators=[Optional()])


class PartnerRegisterForm(RegisterForm):
    """Partner application: account plus business profile."""

    business_name = StringField('Business name', validators=[
        DataRequired(message='Business name is required'),
        Length(max=200)
    ])

    business_type = SelectField('Business type', choices=[
        ('individual', 'Individual'),
        ('company', 'Company')
    ], default='individual')

    tax_id = StringField('Tax ID', validators=[Optional(), Length(max=50)])

    address = StringField('Address', validators=[Optional(), Length(max=255)])


class ChangePasswordForm(FlaskForm):
    """Password change form."""

    current_password = PasswordField('Current password', validators=[
        DataRequired(message='Current password is required')
    ])

    new_password = PasswordField('New password', validators=PASSWORD_VALIDATORS)

    confirm_password = PasswordField('Confirm password', validators=[
        DataRequired(message='Please confirm the new password'),
        EqualTo('new_password', message='Passwords do not match')
    ])


def form_errors(form) -> list:
    """Flatten WTForms errors into a list of messages."""
    return [message for messages in form.errors.values() for message in messages]
