"""
Business logic for account administration.
Provides validation and business rules for users and partner onboarding.
"""

import logging

from models.user import get_all_users, get_user_by_id, get_user_by_username, get_user_by_email, create_user
from models.role import get_role_by_name
from models.partner import (get_partner_profile, create_partner_profile, set_verification_status,
                            BUSINESS_TYPES)
from utils.audit import log_create, log_update
from utils.exceptions import ValidationError, NotFoundError
from utils.messages import get_message
from utils.validators import validate_email, validate_password, validate_phone

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = ('client', 'partner')


def validate_user_creation(username: str, email: str, password: str) -> tuple:
    """
    Validate user creation data.

    Args:
        username: Username to check
        email: Email to check
        password: Password to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not username or len(username.strip()) < 3:
        return False, 'Username must be at least 3 characters'

    if get_user_by_username(username):
        return False, get_message('username_taken')

    if not validate_email(email):
        return False, 'Invalid email format'

    if get_user_by_email(email):
        return False, get_message('email_taken')

    return validate_password(password)


def can_delete_user(user_id: int, current_user_id: int) -> tuple:
    """
    Check if user can be deactivated.

    Returns:
        Tuple of (can_delete, error_message)
    """
    if user_id == current_user_id:
        return False, 'You cannot deactivate your own account'

    user = get_user_by_id(user_id)
    if not user:
        return False, get_message('user_not_found')

    if user['role_name'] == 'admin':
        admins = get_all_users(active_only=True, role_name='admin')
        if len(admins) <= 1:
            return False, 'Cannot deactivate the last administrator'

    return True, ''


def create_account(username: str, email: str, password: str, role_name: str = 'client',
                   full_name: str = None, phone: str = None, locale: str = 'fr') -> int:
    """
    Validate and create a user account.

    Returns:
        New user ID

    Raises:
        ValidationError: invalid data or unknown role
    """
    is_valid, error = validate_user_creation(username, email, password)
    if not is_valid:
        raise ValidationError(error)

    if phone and not validate_phone(phone):
        raise ValidationError('Invalid phone number')

    role = get_role_by_name(role_name)
    if not role:
        raise ValidationError(f'Unknown role: {role_name}')

    user_id = create_user(
        username=username.strip(),
        email=email.strip(),
        password=password,
        full_name=full_name,
        role_id=role['id'],
        phone=phone,
        locale=locale
    )
    log_create('user', user_id, {'username': username, 'email': email, 'role': role_name})
    logger.info(f"Created {role_name} account {username} (id={user_id})")
    return user_id


# =============================================================================
# PARTNERS
# =============================================================================

def register_partner(data: dict) -> int:
    """
    Self-service partner registration.

    Creates the partner account with a pending profile, confirms receipt
    to the partner and alerts staff.

    Args:
        data: username, email, password, full_name, phone, business_name,
            business_type, tax_id, address

    Returns:
        New partner user ID

    Raises:
        ValidationError: invalid account or business data
    """
    from blueprints.lofts.services.notification_service import notify_partner, notify_admins

    business_name = (data.get('business_name') or '').strip()
    if not business_name:
        raise ValidationError('Business name is required')

    business_type = data.get('business_type') or 'individual'
    if business_type not in BUSINESS_TYPES:
        raise ValidationError(f"Business type must be one of: {', '.join(BUSINESS_TYPES)}")

    user_id = create_account(
        username=data.get('username') or '',
        email=data.get('email') or '',
        password=data.get('password') or '',
        role_name='partner',
        full_name=data.get('full_name'),
        phone=data.get('phone'),
        locale=data.get('locale') or 'fr'
    )
    create_partner_profile(
        user_id,
        business_name=business_name,
        business_type=business_type,
        tax_id=data.get('tax_id'),
        address=data.get('address'),
        phone=data.get('phone')
    )

    notify_partner(user_id, 'registration_received')
    notify_admins(
        'new_partner_application',
        'New partner application',
        f'{business_name} applied to become a partner.',
        priority='high',
        link='/admin/partners?status=pending'
    )
    return user_id


def _review_partner(partner_id: int, status: str, admin_id: int, reason: str = None) -> dict:
    before = get_partner_profile(partner_id)
    if not before:
        raise NotFoundError(get_message('partner_not_found'))

    set_verification_status(partner_id, status, verified_by=admin_id, rejection_reason=reason)
    after = get_partner_profile(partner_id)
    log_update('partner_profile', before['id'], before, after)
    return after


def approve_partner(partner_id: int, admin_id: int) -> dict:
    """
    Mark a partner as verified and tell them.

    Raises:
        NotFoundError: no partner profile for this user
    """
    from blueprints.lofts.services.notification_service import notify_partner

    profile = _review_partner(partner_id, 'verified', admin_id)
    notify_partner(partner_id, 'registration_approved', link='/partner/dashboard')
    logger.info(f"Partner {partner_id} approved by {admin_id}")
    return profile


def reject_partner(partner_id: int, admin_id: int, reason: str = None) -> dict:
    """
    Reject a partner application with an optional reason.

    Raises:
        NotFoundError: no partner profile for this user
    """
    from blueprints.lofts.services.notification_service import notify_partner

    profile = _review_partner(partner_id, 'rejected', admin_id, reason)
    notify_partner(partner_id, 'registration_rejected', reason=reason)
    logger.info(f"Partner {partner_id} rejected by {admin_id}")
    return profile
