"""
Property Service - Partner-side loft and pricing rule management.

Handles:
- Loft create/update/delete scoped to the owning partner
- Pricing rule create/update/delete with validation
- Audit entries and partner notifications for each change
"""

import logging
from typing import Any, Dict, List

from blueprints.lofts.services.notification_service import notify_partner
from blueprints.lofts.services.pricing_service import validate_pricing_rule
from models.loft import get_loft_by_id, create_loft, update_loft, delete_loft, validate_loft_data, LOFT_FIELDS
from models.pricing_rule import (
    get_pricing_rule_by_id,
    create_pricing_rule,
    update_pricing_rule,
    delete_pricing_rule,
    RULE_FIELDS
)
from utils.audit import log_create, log_update, log_delete
from utils.exceptions import NotFoundError, ValidationError
from utils.messages import get_message

logger = logging.getLogger(__name__)

# Partners cannot reassign revenue split or ownership themselves
PARTNER_EDITABLE_FIELDS = [f for f in LOFT_FIELDS
                           if f not in ('partner_id', 'owner_id', 'company_percentage', 'owner_percentage')]


def _is_staff(user) -> bool:
    return getattr(user, 'role_name', None) in ('admin', 'manager')


def get_managed_loft(loft_id: int, user) -> Dict[str, Any]:
    """
    Loft the user may manage.

    Raises:
        NotFoundError: missing or owned by another partner
    """
    loft = get_loft_by_id(loft_id)
    if not loft or (not _is_staff(user) and loft.get('partner_id') != user.id):
        raise NotFoundError(get_message('loft_not_found'))
    return loft


# =============================================================================
# PROPERTIES
# =============================================================================

def create_property(data: Dict[str, Any], user) -> Dict[str, Any]:
    """
    Create a loft for a partner (staff may create for any partner).

    Raises:
        ValidationError: invalid loft data
    """
    fields = LOFT_FIELDS if _is_staff(user) else PARTNER_EDITABLE_FIELDS
    values = {k: data[k] for k in fields if k in data}
    if not _is_staff(user):
        values['partner_id'] = user.id

    errors = validate_loft_data(values)
    if errors:
        raise ValidationError('Invalid loft data', errors)

    loft_id = create_loft(**values)
    loft = get_loft_by_id(loft_id)
    log_create('loft', loft_id, values)

    if loft.get('partner_id'):
        notify_partner(loft['partner_id'], 'property_added', property_name=loft['name'],
                       link=f'/partner/properties/{loft_id}')
    logger.info(f"Loft {loft_id} created by user {user.id}")
    return loft


def update_property(loft_id: int, data: Dict[str, Any], user) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: loft not managed by the user
        ValidationError: invalid loft data
    """
    before = get_managed_loft(loft_id, user)
    fields = LOFT_FIELDS if _is_staff(user) else PARTNER_EDITABLE_FIELDS
    values = {k: data[k] for k in fields if k in data}
    if not values:
        raise ValidationError('No fields to update')

    try:
        update_loft(loft_id, **values)
    except ValueError as e:
        raise ValidationError('Invalid loft data', str(e).split('; '))

    after = get_loft_by_id(loft_id)
    log_update('loft', loft_id, before, after)

    if after.get('partner_id'):
        notify_partner(after['partner_id'], 'property_updated', property_name=after['name'])
    return after


def delete_property(loft_id: int, user) -> None:
    """
    Raises:
        NotFoundError: loft not managed by the user
        ValidationError: loft has reservations
    """
    loft = get_managed_loft(loft_id, user)
    try:
        delete_loft(loft_id)
    except ValueError as e:
        raise ValidationError(str(e))

    log_delete('loft', loft_id, loft)
    if loft.get('partner_id'):
        notify_partner(loft['partner_id'], 'property_removed', property_name=loft['name'])
    logger.info(f"Loft {loft_id} deleted by user {user.id}")


# =============================================================================
# PRICING RULES
# =============================================================================

def create_rule(loft_id: int, data: Dict[str, Any], user) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: loft not managed by the user
        ValidationError: rule failed validation
    """
    get_managed_loft(loft_id, user)

    values = {k: data[k] for k in RULE_FIELDS if k in data}
    values.setdefault('priority', 0)
    values.setdefault('is_active', True)
    errors = validate_pricing_rule(values)
    if errors:
        raise ValidationError('Invalid pricing rule', errors)

    rule_id = create_pricing_rule(loft_id, **values)
    rule = get_pricing_rule_by_id(rule_id)
    log_create('pricing_rule', rule_id, rule)
    return rule


def get_managed_rule(rule_id: int, user) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: rule missing or on a loft the user does not manage
    """
    rule = get_pricing_rule_by_id(rule_id)
    if not rule:
        raise NotFoundError(get_message('pricing_rule_not_found'))
    try:
        get_managed_loft(rule['loft_id'], user)
    except NotFoundError:
        raise NotFoundError(get_message('pricing_rule_not_found'))
    return rule


def update_rule(rule_id: int, data: Dict[str, Any], user) -> Dict[str, Any]:
    """
    Update a rule; the merged rule is validated as a whole.

    Raises:
        NotFoundError: rule not managed by the user
        ValidationError: merged rule failed validation
    """
    before = get_managed_rule(rule_id, user)
    changes = {k: data[k] for k in RULE_FIELDS if k in data}

    errors = validate_pricing_rule({**before, **changes})
    if errors:
        raise ValidationError('Invalid pricing rule', errors)

    update_pricing_rule(rule_id, **changes)
    after = get_pricing_rule_by_id(rule_id)
    log_update('pricing_rule', rule_id, before, after)
    return after


def delete_rule(rule_id: int, user) -> None:
    rule = get_managed_rule(rule_id, user)
    delete_pricing_rule(rule_id)
    log_delete('pricing_rule', rule_id, rule)


def check_rule(data: Dict[str, Any]) -> List[str]:
    """Validate a rule without saving it."""
    return validate_pricing_rule({k: data[k] for k in RULE_FIELDS if k in data})
