"""
Admin routes: users, partner validation, owners, audit logs and database cloning.
All routes answer JSON.
"""

import logging

from flask import Blueprint, Response, request
from flask_login import login_required, current_user

from blueprints.admin.services import (
    can_delete_user,
    create_account,
    approve_partner,
    reject_partner
)
from blueprints.admin.services.audit_service import (
    get_audit_logs,
    get_entity_audit_history,
    export_audit_logs,
    verify_audit_integrity,
    get_retention_status,
    cleanup_old_logs,
    detect_suspicious_access
)
from blueprints.admin.services.cloner_service import get_clone_orchestrator
from blueprints.lofts.services.audit_context import get_client_ip, with_audit_context
from blueprints.lofts.services.reservation_service import get_reservation_stats
from models.audit_log import log_audit_access, get_distinct_entity_types
from models.owner import get_all_owners, get_owner_by_id, create_owner, update_owner, delete_owner
from models.partner import get_partners, VERIFICATION_STATUSES
from models.user import get_all_users, get_user_by_id, delete_user
from utils.api_response import api_success, api_error, domain_error, get_json_body
from utils.audit import log_create, log_update, log_delete
from utils.decorators import permission_required
from utils.exceptions import (ValidationError, NotFoundError, CloneError,
                              CloneInProgressError, ProductionProtectionError)
from utils.messages import get_message

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

USER_PUBLIC_FIELDS = ('id', 'username', 'email', 'full_name', 'phone', 'role_name',
                      'locale', 'active', 'created_at', 'last_login')


def _public_user(user: dict) -> dict:
    return {key: user.get(key) for key in USER_PUBLIC_FIELDS}


def _audit_filters() -> dict:
    args = request.args
    filters = {
        'entity_type': args.get('entity_type'),
        'entity_id': args.get('entity_id', type=int),
        'user_id': args.get('user_id', type=int),
        'action': args.get('action'),
        'date_from': args.get('date_from'),
        'date_to': args.get('date_to'),
        'search': args.get('search'),
    }
    return {k: v for k, v in filters.items() if v not in (None, '')}


@admin_bp.route('/dashboard')
@login_required
@permission_required('admin.users.view')
def dashboard():
    """Platform summary: users, pending partners and this month's bookings."""
    users = get_all_users(active_only=False)
    return api_success(data={
        'total_users': len(users),
        'active_users': len([u for u in users if u['active']]),
        'pending_partners': len(get_partners('pending')),
        'reservations': get_reservation_stats()
    })


# =============================================================================
# USERS
# =============================================================================

@admin_bp.route('/users', methods=['GET'])
@login_required
@permission_required('admin.users.view')
def users():
    """
    List users.

    Query params:
        role: Role name filter
        active: 1 or 0
        search: Matches username, email or full name
    """
    role_filter = request.args.get('role') or None
    active_filter = request.args.get('active', '')
    search = (request.args.get('search') or '').lower()

    all_users = get_all_users(active_only=False, role_name=role_filter)

    if active_filter:
        is_active = active_filter == '1'
        all_users = [u for u in all_users if bool(u['active']) == is_active]

    if search:
        all_users = [u for u in all_users if
                     search in u['username'].lower() or
                     search in (u['email'] or '').lower() or
                     search in (u['full_name'] or '').lower()]

    return api_success(data=[_public_user(u) for u in all_users], count=len(all_users))


@admin_bp.route('/users', methods=['POST'])
@login_required
@permission_required('admin.users.manage')
@with_audit_context
def create_user_route():
    """
    Create a user with any role.

    Request JSON:
    {"username": "...", "email": "...", "password": "...", "role": "manager", "full_name": "..."}
    """
    data = get_json_body()
    try:
        user_id = create_account(
            username=data.get('username') or '',
            email=data.get('email') or '',
            password=data.get('password') or '',
            role_name=data.get('role') or 'client',
            full_name=data.get('full_name'),
            phone=data.get('phone'),
            locale=data.get('locale') or 'fr'
        )
    except ValidationError as e:
        return domain_error(e)
    return api_success(data=_public_user(get_user_by_id(user_id)), message=get_message('user_created'), status=201)


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@login_required
@permission_required('admin.users.manage')
@with_audit_context
def deactivate_user(user_id):
    can_delete, error = can_delete_user(user_id, current_user.id)
    if not can_delete:
        status = 404 if error == get_message('user_not_found') else 400
        return api_error(error, status=status)

    before = get_user_by_id(user_id)
    delete_user(user_id)
    log_update('user', user_id, {'active': before['active']}, {'active': 0})
    return api_success(message=get_message('user_deleted'))


# =============================================================================
# PARTNERS
# =============================================================================

@admin_bp.route('/partners', methods=['GET'])
@login_required
@permission_required('admin.partners.validate')
def partners():
    status = request.args.get('status') or None
    if status and status not in VERIFICATION_STATUSES:
        return api_error(get_message('invalid_status'))
    profiles = get_partners(status)
    return api_success(data=profiles, count=len(profiles))


@admin_bp.route('/partners/<int:partner_id>/approve', methods=['POST'])
@login_required
@permission_required('admin.partners.validate')
@with_audit_context
def approve_partner_route(partner_id):
    try:
        profile = approve_partner(partner_id, current_user.id)
    except NotFoundError as e:
        return domain_error(e)
    return api_success(data=profile, message=get_message('partner_approved'))


@admin_bp.route('/partners/<int:partner_id>/reject', methods=['POST'])
@login_required
@permission_required('admin.partners.validate')
@with_audit_context
def reject_partner_route(partner_id):
    """
    Reject a partner.

    Request JSON:
    {"reason": "Missing business documents"}
    """
    try:
        profile = reject_partner(partner_id, current_user.id, get_json_body().get('reason'))
    except NotFoundError as e:
        return domain_error(e)
    return api_success(data=profile, message=get_message('partner_rejected'))


# =============================================================================
# OWNERS
# =============================================================================

OWNER_FIELDS = ('name', 'email', 'phone', 'address', 'ownership_type', 'user_id')


@admin_bp.route('/owners', methods=['GET'])
@login_required
@permission_required('admin.owners.manage')
def owners():
    return api_success(data=get_all_owners())


@admin_bp.route('/owners', methods=['POST'])
@login_required
@permission_required('admin.owners.manage')
@with_audit_context
def create_owner_route():
    data = {k: v for k, v in get_json_body().items() if k in OWNER_FIELDS}
    if not (data.get('name') or '').strip():
        return api_error('Name is required')

    try:
        owner_id = create_owner(**data)
    except ValueError as e:
        return api_error(str(e))

    log_create('owner', owner_id, data)
    return api_success(data=get_owner_by_id(owner_id), message=get_message('owner_created'), status=201)


@admin_bp.route('/owners/<int:owner_id>', methods=['GET'])
@login_required
@permission_required('admin.owners.manage')
def get_owner(owner_id):
    owner = get_owner_by_id(owner_id)
    if not owner:
        return api_error(get_message('owner_not_found'), status=404)
    return api_success(data=owner)


@admin_bp.route('/owners/<int:owner_id>', methods=['PUT'])
@login_required
@permission_required('admin.owners.manage')
@with_audit_context
def update_owner_route(owner_id):
    before = get_owner_by_id(owner_id)
    if not before:
        return api_error(get_message('owner_not_found'), status=404)

    data = {k: v for k, v in get_json_body().items() if k in OWNER_FIELDS}
    try:
        update_owner(owner_id, **data)
    except ValueError as e:
        return api_error(str(e))

    after = get_owner_by_id(owner_id)
    log_update('owner', owner_id, before, after)
    return api_success(data=after, message=get_message('owner_updated'))


@admin_bp.route('/owners/<int:owner_id>', methods=['DELETE'])
@login_required
@permission_required('admin.owners.manage')
@with_audit_context
def delete_owner_route(owner_id):
    owner = get_owner_by_id(owner_id)
    if not owner:
        return api_error(get_message('owner_not_found'), status=404)

    try:
        delete_owner(owner_id)
    except ValueError as e:
        return api_error(str(e))

    log_delete('owner', owner_id, owner)
    return api_success(message=get_message('owner_deleted'))


# =============================================================================
# AUDIT LOGS
# =============================================================================

@admin_bp.route('/audit-logs', methods=['GET'])
@login_required
@permission_required('admin.audit.view')
def audit_logs():
    """
    Paginated audit trail.

    Query params:
        entity_type, entity_id, user_id, action, date_from, date_to, search,
        page, limit
    """
    filters = _audit_filters()
    result = get_audit_logs(
        filters,
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 50, type=int)
    )
    log_audit_access(
        'FILTER' if filters else 'VIEW',
        user_id=current_user.id,
        filters=filters,
        records_accessed=len(result['logs']),
        ip_address=get_client_ip()
    )
    result['entity_types'] = get_distinct_entity_types()
    return api_success(data=result)


@admin_bp.route('/audit-logs/<entity_type>/<int:entity_id>', methods=['GET'])
@login_required
@permission_required('admin.audit.view')
def audit_history(entity_type, entity_id):
    history = get_entity_audit_history(entity_type, entity_id)
    log_audit_access('VIEW', user_id=current_user.id, entity_type=entity_type, entity_id=entity_id,
                     records_accessed=len(history), ip_address=get_client_ip())
    return api_success(data=history)


@admin_bp.route('/audit-logs/export', methods=['GET'])
@login_required
@permission_required('admin.audit.export')
def export_audit():
    """
    Download audit logs.

    Query params:
        format: csv (default), json or xlsx
        include_values: 0 to leave out before/after values
        plus the list filters
    """
    filters = _audit_filters()
    fmt = request.args.get('format', 'csv')
    include_values = request.args.get('include_values', '1') != '0'

    try:
        content, mimetype, filename, count = export_audit_logs(filters, fmt, include_values)
    except ValueError as e:
        return api_error(str(e))

    log_audit_access('EXPORT', user_id=current_user.id, filters={**filters, 'format': fmt},
                     records_accessed=count, ip_address=get_client_ip())

    return Response(
        content,
        mimetype=mimetype,
        headers={
            'Content-Disposition': f'attachment; filename={filename}'
        }
    )


@admin_bp.route('/audit-logs/integrity', methods=['GET'])
@login_required
@permission_required('admin.audit.manage')
def audit_integrity():
    return api_success(data=verify_audit_integrity())


@admin_bp.route('/audit-logs/retention', methods=['GET'])
@login_required
@permission_required('admin.audit.manage')
def audit_retention():
    return api_success(data=get_retention_status(request.args.get('days', type=int)))


@admin_bp.route('/audit-logs/cleanup', methods=['POST'])
@login_required
@permission_required('admin.audit.manage')
def audit_cleanup():
    days = get_json_body().get('days')
    if days is not None and (not isinstance(days, int) or days < 1):
        return api_error('days must be a positive integer')

    deleted = cleanup_old_logs(days)
    return api_success(data={'deleted': deleted})


@admin_bp.route('/audit-logs/suspicious', methods=['GET'])
@login_required
@permission_required('admin.audit.manage')
def audit_suspicious():
    return api_success(data=detect_suspicious_access(
        hours=request.args.get('hours', 24, type=int),
        threshold=request.args.get('threshold', type=int)
    ))


# =============================================================================
# DATABASE CLONING
# =============================================================================

@admin_bp.route('/database/clone', methods=['POST'])
@login_required
@permission_required('admin.database.clone')
def start_clone():
    """
    Start a clone in the background.

    Request JSON:
    {"source": "prod", "target": "dev", "backup": true}

    Response: 202 with the operation id; 409 when a clone is running,
    403 when the target is production.
    """
    data = get_json_body()
    source, target = data.get('source'), data.get('target')
    if not source or not target:
        return api_error('source and target environments are required')

    orchestrator = get_clone_orchestrator()
    try:
        operation_id = orchestrator.start_clone(
            source, target,
            options={'backup': bool(data.get('backup'))},
            run_async=True
        )
    except CloneInProgressError as e:
        return api_error(str(e), status=409)
    except ProductionProtectionError as e:
        return api_error(str(e), status=403)
    except CloneError as e:
        return api_error(str(e))

    logger.info(f"User {current_user.id} started clone {source} -> {target} ({operation_id})")
    return api_success(data={'operation_id': operation_id}, message=get_message('clone_started'), status=202)


@admin_bp.route('/database/clone', methods=['GET'])
@login_required
@permission_required('admin.database.clone')
def list_clones():
    orchestrator = get_clone_orchestrator()
    return api_success(data=orchestrator.list_operations(), is_cloning=orchestrator.is_cloning())


@admin_bp.route('/database/clone/<operation_id>', methods=['GET'])
@login_required
@permission_required('admin.database.clone')
def clone_status(operation_id):
    operation = get_clone_orchestrator().get_status(operation_id)
    if not operation:
        return api_error('Clone operation not found', status=404)
    return api_success(data=operation)


@admin_bp.route('/database/clone/release', methods=['POST'])
@login_required
@permission_required('admin.database.clone')
def release_clone_lock():
    """Clear a stuck clone lock."""
    was_locked = get_clone_orchestrator().force_release()
    logger.warning(f"User {current_user.id} force-released the clone lock (held={was_locked})")
    return api_success(data={'released': was_locked})
