"""
Authentication routes: login, logout, registration, profile.
Browsers get the login page; API callers get JSON.
"""

import logging
from urllib.parse import urlparse

from flask import render_template, redirect, url_for, flash, request, Blueprint
from flask_login import login_user, logout_user, login_required, current_user

from blueprints.admin.services import create_account, register_partner
from blueprints.auth.forms import LoginForm, RegisterForm, PartnerRegisterForm, ChangePasswordForm, form_errors
from models.user import (User, get_user_by_id, get_user_by_login, update_last_login,
                         update_user, update_password, check_password)
from utils.api_response import api_success, api_error, domain_error, get_json_body, wants_json
from utils.exceptions import ValidationError
from utils.messages import MESSAGES, get_message
from utils.permissions import cache_user_permissions
from utils.validators import validate_email, validate_phone

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

PROFILE_FIELDS = ('email', 'full_name', 'phone', 'locale')


def _home_url(user) -> str:
    if user.role_name == 'partner':
        return url_for('partner.dashboard')
    if user.role_name in ('admin', 'manager'):
        return url_for('admin.dashboard')
    return url_for('auth.profile')


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """
    Login route with form handling.

    GET: Display login form
    POST: Process credentials (form post or JSON {username, password, remember_me})
    """
    if current_user.is_authenticated and request.method == 'GET':
        return redirect(_home_url(current_user))

    form = LoginForm()

    if form.validate_on_submit():
        user_dict = get_user_by_login(form.username.data.strip())

        if user_dict is None or not check_password(user_dict, form.password.data):
            logger.info(f"Failed login for {form.username.data}")
            if wants_json():
                return api_error(MESSAGES['invalid_credentials'], status=401)
            flash(MESSAGES['invalid_credentials'], 'error')
            return redirect(url_for('auth.login'))

        if not user_dict.get('active'):
            if wants_json():
                return api_error(MESSAGES['account_disabled'], status=403)
            flash(MESSAGES['account_disabled'], 'error')
            return redirect(url_for('auth.login'))

        user = User(user_dict)
        login_user(user, remember=form.remember_me.data)
        update_last_login(user.id)
        cache_user_permissions(user.id)

        if wants_json():
            return api_success(data=user.to_dict(),
                               message=get_message('login_success', name=user.full_name or user.username))

        flash(get_message('login_success', name=user.full_name or user.username), 'success')

        next_page = request.args.get('next')
        if not next_page or urlparse(next_page).netloc != '':
            next_page = _home_url(user)
        return redirect(next_page)

    if request.method == 'POST' and wants_json():
        return api_error('Invalid login data', status=400, errors=form_errors(form))

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout', methods=['GET', 'POST'])
@login_required
def logout():
    """Logout current user."""
    logout_user()
    if wants_json():
        return api_success(message=MESSAGES['logout_success'])
    flash(MESSAGES['logout_success'], 'success')
    return redirect(url_for('auth.login'))


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Client self-registration.

    Request JSON:
    {"username": "...", "email": "...", "password": "...", "full_name": "...", "phone": "..."}
    """
    form = RegisterForm()
    if not form.validate_on_submit():
        return api_error('Invalid registration data', status=400, errors=form_errors(form))

    try:
        user_id = create_account(
            username=form.username.data,
            email=form.email.data,
            password=form.password.data,
            role_name='client',
            full_name=form.full_name.data,
            phone=form.phone.data or None,
            locale=form.locale.data or 'fr'
        )
    except ValidationError as e:
        return domain_error(e)

    user = User(get_user_by_id(user_id))
    login_user(user)
    return api_success(data=user.to_dict(), message=get_message('registration_success'), status=201)


@auth_bp.route('/partner/register', methods=['POST'])
def partner_register():
    """
    Partner application. The account starts with a pending profile and
    admins are notified for review.
    """
    form = PartnerRegisterForm()
    if not form.validate_on_submit():
        return api_error('Invalid registration data', status=400, errors=form_errors(form))

    try:
        user_id = register_partner({field.name: field.data for field in form if field.name != 'csrf_token'})
    except ValidationError as e:
        return domain_error(e)

    user = User(get_user_by_id(user_id))
    login_user(user)
    return api_success(data=user.to_dict(), message=get_message('partner_registration_success'), status=201)


@auth_bp.route('/profile', methods=['GET'])
@login_required
def profile():
    """Current user's profile."""
    return api_success(data=current_user.to_dict())


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def profile_update():
    """Update email, full name, phone or locale."""
    data = {k: v for k, v in get_json_body().items() if k in PROFILE_FIELDS}
    if 'email' in data and not validate_email(data['email']):
        return api_error('Invalid email format')
    if data.get('phone') and not validate_phone(data['phone']):
        return api_error('Invalid phone number')
    if 'locale' in data and data['locale'] not in ('fr', 'en', 'ar'):
        return api_error('Locale must be one of: fr, en, ar')

    if data:
        update_user(current_user.id, **data)
    return api_success(data=User(get_user_by_id(current_user.id)).to_dict(),
                       message=MESSAGES['profile_updated'])


@auth_bp.route('/profile/change-password', methods=['POST'])
@login_required
def change_password():
    """
    Change the current user's password.

    Request JSON:
    {"current_password": "...", "new_password": "...", "confirm_password": "..."}
    """
    form = ChangePasswordForm()
    if not form.validate_on_submit():
        return api_error('Invalid password data', status=400, errors=form_errors(form))

    user_dict = get_user_by_id(current_user.id)
    if not check_password(user_dict, form.current_password.data):
        return api_error(MESSAGES['current_password_wrong'])

    update_password(current_user.id, form.new_password.data)
    logger.info(f"User {current_user.id} changed password")
    return api_success(message=MESSAGES['password_updated'])
