"""
Lofts API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask_login import current_user


def can_manage_loft(loft: dict) -> bool:
    """Staff manage every loft, partners only their own."""
    if not current_user.is_authenticated:
        return False
    if current_user.role_name in ('admin', 'manager'):
        return True
    return current_user.role_name == 'partner' and loft.get('partner_id') == current_user.id


def can_view_loft(loft: dict) -> bool:
    """Published lofts are public; unpublished ones only for who manages them."""
    return bool(loft.get('is_published')) or can_manage_loft(loft)
