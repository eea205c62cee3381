"""
Audit Log model and data access functions.
Handles audit log creation, retrieval, filtering, integrity checks, access
tracking, and retention cleanup.
"""

import json
import hashlib
from datetime import timedelta
from database import get_db
from utils.datetime_helpers import get_now, get_now_str

AUDIT_ACCESS_TYPES = ('VIEW', 'EXPORT', 'SEARCH', 'FILTER')


# =============================================================================
# INTEGRITY
# =============================================================================

def compute_integrity_hash(entry: dict) -> str:
    """
    SHA-256 over the immutable fields of an audit row.

    Args:
        entry: Audit row dict (action, entity_type, entity_id, user_id, changes, created_at)

    Returns:
        Hex digest
    """
    payload = json.dumps({
        'action': entry.get('action'),
        'entity_type': entry.get('entity_type'),
        'entity_id': entry.get('entity_id'),
        'user_id': entry.get('user_id'),
        'changes': entry.get('changes'),
        'created_at': str(entry.get('created_at')),
    }, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def verify_integrity() -> dict:
    """
    Recompute every row hash and compare with the stored one.

    Returns:
        Dict with total, valid, invalid, integrity_percentage and invalid_ids
    """
    with get_db() as conn:
        rows = conn.execute('SELECT * FROM audit_log ORDER BY id').fetchall()

    invalid_ids = [
        row['id'] for row in rows
        if row['integrity_hash'] != compute_integrity_hash(dict(row))
    ]
    total = len(rows)
    valid = total - len(invalid_ids)

    return {
        'total': total,
        'valid': valid,
        'invalid': len(invalid_ids),
        'integrity_percentage': round(valid / total * 100, 2) if total else 100.0,
        'invalid_ids': invalid_ids[:100]
    }


# =============================================================================
# READ OPERATIONS
# =============================================================================

def _build_filters(filters: dict) -> tuple:
    """Translate a filter dict into a WHERE fragment and its parameters."""
    filters = filters or {}
    clauses = []
    params = []

    if filters.get('user_id') is not None:
        clauses.append('al.user_id = ?')
        params.append(filters['user_id'])

    if filters.get('action'):
        clauses.append('al.action = ?')
        params.append(filters['action'])

    if filters.get('entity_type'):
        clauses.append('al.entity_type = ?')
        params.append(filters['entity_type'])

    if filters.get('entity_id') is not None:
        clauses.append('al.entity_id = ?')
        params.append(filters['entity_id'])

    if filters.get('date_from'):
        clauses.append('date(al.created_at) >= date(?)')
        params.append(filters['date_from'])

    if filters.get('date_to'):
        clauses.append('date(al.created_at) <= date(?)')
        params.append(filters['date_to'])

    if filters.get('search'):
        term = f"%{filters['search']}%"
        clauses.append('(al.entity_type LIKE ? OR al.user_email LIKE ? OR al.changes LIKE ? OR al.changed_fields LIKE ?)')
        params.extend([term, term, term, term])

    where = ' AND '.join(clauses) if clauses else '1=1'
    return where, params


def get_audit_log_by_id(audit_log_id: int) -> dict:
    """
    Get audit log entry by ID.

    Args:
        audit_log_id: Audit log ID

    Returns:
        Audit log dict or None if not found
    """
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            SELECT al.*, u.username, u.full_name as user_full_name
            FROM audit_log al
            LEFT JOIN users u ON al.user_id = u.id
            WHERE al.id = ?
        ''', (audit_log_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def get_audit_logs(filters: dict = None, limit: int = 50, offset: int = 0) -> list:
    """
    Get audit logs with optional filtering.

    Args:
        filters: Dict with any of user_id, action, entity_type, entity_id,
                 date_from, date_to (YYYY-MM-DD), search
        limit: Maximum number of records to return
        offset: Number of records to skip for pagination

    Returns:
        List of audit log dicts, newest first
    """
    where, params = _build_filters(filters)

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f'''
            SELECT al.*, u.username, u.full_name as user_full_name
            FROM audit_log al
            LEFT JOIN users u ON al.user_id = u.id
            WHERE {where}
            ORDER BY al.created_at DESC, al.id DESC
            LIMIT ? OFFSET ?
        ''', params + [limit, offset])
        return [dict(row) for row in cursor.fetchall()]


def count_audit_logs(filters: dict = None) -> int:
    """Count audit logs matching the same filters as get_audit_logs."""
    where, params = _build_filters(filters)

    with get_db() as conn:
        row = conn.execute(f'SELECT COUNT(*) as count FROM audit_log al WHERE {where}', params).fetchone()
        return row['count'] if row else 0


def get_audit_logs_for_entity(entity_type: str, entity_id: int, limit: int = 50) -> list:
    """
    Get audit history for a specific entity.

    Args:
        entity_type: Entity type (loft, reservation, ...)
        entity_id: Entity ID
        limit: Maximum number of records to return

    Returns:
        List of audit log dicts ordered by most recent first
    """
    return get_audit_logs({'entity_type': entity_type, 'entity_id': entity_id}, limit=limit)


def get_distinct_entity_types() -> list:
    with get_db() as conn:
        rows = conn.execute('SELECT DISTINCT entity_type FROM audit_log ORDER BY entity_type').fetchall()
        return [row['entity_type'] for row in rows]


# =============================================================================
# CREATE OPERATIONS
# =============================================================================

def create_audit_log(
    action: str,
    entity_type: str,
    entity_id: int = None,
    user_id: int = None,
    user_email: str = None,
    changes: dict = None,
    ip_address: str = None,
    user_agent: str = None
) -> int:
    """
    Create a new audit log entry.

    Args:
        action: Action type (INSERT, UPDATE, DELETE, ...)
        entity_type: Entity type (loft, reservation, pricing_rule, ...)
        entity_id: ID of the affected entity
        user_id: ID of the user who performed the action (None for system actions)
        user_email: Email of the acting user, kept even if the user is deleted
        changes: Dictionary with before/after state
        ip_address: Client IP address
        user_agent: Client user agent string

    Returns:
        New audit log ID

    Example:
        create_audit_log(
            action='UPDATE',
            entity_type='reservation',
            entity_id=123,
            user_id=1,
            changes={
                'before': {'status': 'pending'},
                'after': {'status': 'confirmed'}
            },
            ip_address='192.168.1.1'
        )
    """
    changes_json = None
    changed_fields = None
    if changes is not None:
        changes_json = json.dumps(changes, default=str, ensure_ascii=False, sort_keys=True)
        changed_fields = ','.join(diff_fields(changes.get('before'), changes.get('after')))

    entry = {
        'action': action,
        'entity_type': entity_type,
        'entity_id': entity_id,
        'user_id': user_id,
        'changes': changes_json,
        'created_at': get_now_str(),
    }

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO audit_log
            (user_id, user_email, action, entity_type, entity_id, changes, changed_fields,
             ip_address, user_agent, integrity_hash, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (user_id, user_email, action, entity_type, entity_id, changes_json, changed_fields,
              ip_address, user_agent, compute_integrity_hash(entry), entry['created_at']))
        return cursor.lastrowid


def diff_fields(before: dict, after: dict) -> list:
    """Names of keys whose values differ between two snapshots."""
    before = before or {}
    after = after or {}
    keys = sorted(set(before) | set(after))
    return [key for key in keys if before.get(key) != after.get(key)]


# =============================================================================
# ACCESS TRACKING
# =============================================================================

def log_audit_access(
    access_type: str,
    user_id: int = None,
    entity_type: str = None,
    entity_id: int = None,
    filters: dict = None,
    records_accessed: int = 0,
    ip_address: str = None
) -> int:
    """
    Record who looked at audit data.

    Raises:
        ValueError: access_type not one of VIEW, EXPORT, SEARCH, FILTER
    """
    if access_type not in AUDIT_ACCESS_TYPES:
        raise ValueError(f'Invalid audit access type: {access_type}')

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO audit_access_log
            (user_id, access_type, entity_type, entity_id, filters, records_accessed, ip_address, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (user_id, access_type, entity_type, entity_id,
              json.dumps(filters, default=str) if filters else None,
              records_accessed, ip_address, get_now_str()))
        return cursor.lastrowid


def get_access_counts_since(since: str) -> list:
    """
    Per-user access statistics since a timestamp.

    Returns:
        List of dicts with user_id, username, total_accesses, export_count, records_accessed
    """
    with get_db() as conn:
        rows = conn.execute('''
            SELECT aal.user_id, u.username,
                   COUNT(*) as total_accesses,
                   SUM(CASE WHEN aal.access_type = 'EXPORT' THEN 1 ELSE 0 END) as export_count,
                   COALESCE(SUM(aal.records_accessed), 0) as records_accessed
            FROM audit_access_log aal
            LEFT JOIN users u ON aal.user_id = u.id
            WHERE aal.created_at >= ?
            GROUP BY aal.user_id
            ORDER BY total_accesses DESC
        ''', (since,)).fetchall()
        return [dict(row) for row in rows]


# =============================================================================
# CLEANUP OPERATIONS
# =============================================================================

def cleanup_old_logs(days: int = 365) -> int:
    """
    Delete audit logs older than specified number of days.

    Args:
        days: Number of days to retain logs

    Returns:
        Number of deleted records
    """
    cutoff_str = (get_now() - timedelta(days=days)).strftime('%Y-%m-%d %H:%M:%S')

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM audit_log WHERE created_at < ?', (cutoff_str,))
        return cursor.rowcount


def get_retention_stats(days: int = 365) -> dict:
    """
    Get statistics about audit log retention.

    Args:
        days: Retention window in days

    Returns:
        Dict with total_count, oldest_log, newest_log, expired_count and retention_days
    """
    cutoff_str = (get_now() - timedelta(days=days)).strftime('%Y-%m-%d %H:%M:%S')

    with get_db() as conn:
        row = conn.execute('''
            SELECT COUNT(*) as total_count,
                   MIN(created_at) as oldest_log,
                   MAX(created_at) as newest_log,
                   SUM(CASE WHEN created_at < ? THEN 1 ELSE 0 END) as expired_count
            FROM audit_log
        ''', (cutoff_str,)).fetchone()

        return {
            'total_count': row['total_count'],
            'oldest_log': row['oldest_log'],
            'newest_log': row['newest_log'],
            'expired_count': row['expired_count'] or 0,
            'retention_days': days
        }
