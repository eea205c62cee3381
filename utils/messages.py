"""
Centralized UI messages.
All user-facing text lives here for consistency.
"""

MESSAGES = {
    # Success messages
    'login_success': 'Welcome {name}',
    'logout_success': 'You have been logged out',
    'registration_success': 'Account created successfully',
    'partner_registration_success': 'Registration received. Your account is pending validation',
    'profile_updated': 'Profile updated successfully',
    'password_updated': 'Password updated successfully',
    'loft_created': 'Loft created successfully',
    'loft_updated': 'Loft updated successfully',
    'loft_deleted': 'Loft deleted',
    'owner_created': 'Owner created successfully',
    'owner_updated': 'Owner updated successfully',
    'owner_deleted': 'Owner deleted',
    'reservation_created': 'Reservation created successfully',
    'reservation_updated': 'Reservation status updated to {status}',
    'dates_blocked': '{count} dates blocked',
    'dates_unblocked': '{count} dates unblocked',
    'pricing_rule_created': 'Pricing rule created',
    'pricing_rule_updated': 'Pricing rule updated',
    'pricing_rule_deleted': 'Pricing rule deleted',
    'message_sent': 'Message sent to guest',
    'partner_approved': 'Partner approved',
    'partner_rejected': 'Partner rejected',
    'user_created': 'User created successfully',
    'user_deleted': 'User deactivated',
    'clone_started': 'Clone operation started',

    # Error messages
    'invalid_credentials': 'Invalid username or password',
    'account_disabled': 'Your account has been disabled. Contact an administrator',
    'permission_denied': 'You do not have permission to perform this action',
    'loft_not_found': 'Loft not found',
    'owner_not_found': 'Owner not found',
    'reservation_not_found': 'Reservation not found',
    'pricing_rule_not_found': 'Pricing rule not found',
    'partner_not_found': 'Partner not found',
    'user_not_found': 'User not found',
    'notification_not_found': 'Notification not found',
    'dates_required': 'Check-in and check-out dates are required',
    'dates_unavailable': 'Selected dates are not available',
    'invalid_percentages': 'Company and owner percentages must add up to 100',
    'invalid_status': 'Invalid status',
    'username_taken': 'Username already exists',
    'email_taken': 'Email already exists',
    'current_password_wrong': 'Current password is incorrect',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
