"""
Audit Service - Audit trail querying, export and monitoring.

Handles:
- Paginated audit log listing and per-entity history
- CSV / JSON / Excel export in batches
- Integrity verification and retention
- Detection of unusual audit data access
"""

import io
import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Tuple

from flask import current_app
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment

from models.audit_log import (
    get_audit_logs as query_audit_logs,
    count_audit_logs,
    get_audit_logs_for_entity,
    verify_integrity,
    get_retention_stats,
    cleanup_old_logs as delete_old_logs,
    get_access_counts_since
)
from utils.datetime_helpers import get_now

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'json', 'xlsx')

CSV_HEADERS = [
    'Timestamp', 'Action', 'Table Name', 'Record ID', 'User ID',
    'User Email', 'Changed Fields', 'IP Address', 'User Agent'
]
VALUE_HEADERS = ['Old Values', 'New Values']

MIME_TYPES = {
    'csv': 'text/csv',
    'json': 'application/json',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def _parse_changes(log: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return json.loads(log['changes']) if log.get('changes') else {}
    except (TypeError, ValueError):
        return {}


def _with_changes(log: Dict[str, Any]) -> Dict[str, Any]:
    changes = _parse_changes(log)
    log['old_values'] = changes.get('before')
    log['new_values'] = changes.get('after')
    log['changed_fields'] = [f for f in (log.get('changed_fields') or '').split(',') if f]
    return log


# =============================================================================
# QUERIES
# =============================================================================

def get_audit_logs(filters: Dict[str, Any] = None, page: int = 1, limit: int = 50) -> Dict[str, Any]:
    """
    Paginated audit logs.

    Args:
        filters: entity_type, entity_id, user_id, action, date_from, date_to, search
        page: 1-based page number
        limit: Page size (capped at 100)

    Returns:
        dict with logs, total, page, limit and total_pages
    """
    limit = max(1, min(limit, 100))
    page = max(page, 1)

    logs = query_audit_logs(filters, limit=limit, offset=(page - 1) * limit)
    total = count_audit_logs(filters)

    return {
        'logs': [_with_changes(log) for log in logs],
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': (total + limit - 1) // limit if total else 1
    }


def get_entity_audit_history(entity_type: str, entity_id: int, limit: int = 100) -> List[Dict[str, Any]]:
    """Every audit entry for one record, newest first."""
    return [_with_changes(log) for log in get_audit_logs_for_entity(entity_type, entity_id, limit=limit)]


# =============================================================================
# EXPORT
# =============================================================================

def _fetch_for_export(filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Fetch matching logs batch by batch, up to the configured maximum."""
    batch_size = current_app.config.get('AUDIT_EXPORT_BATCH_SIZE', 1000)
    max_batches = current_app.config.get('AUDIT_EXPORT_MAX_BATCHES', 100)

    logs = []
    for batch in range(max_batches):
        rows = query_audit_logs(filters, limit=batch_size, offset=batch * batch_size)
        logs.extend(rows)
        if len(rows) < batch_size:
            break
    else:
        logger.warning(f"Audit export truncated at {max_batches} batches of {batch_size}")

    return [_with_changes(log) for log in logs]


def _row_values(log: Dict[str, Any], include_values: bool) -> List[Any]:
    row = [
        log.get('created_at') or '',
        log.get('action') or '',
        log.get('entity_type') or '',
        log.get('entity_id') if log.get('entity_id') is not None else '',
        log.get('user_id') if log.get('user_id') is not None else '',
        log.get('user_email') or '',
        ';'.join(log.get('changed_fields') or []),
        log.get('ip_address') or '',
        log.get('user_agent') or '',
    ]
    if include_values:
        row.append(json.dumps(log['old_values'], default=str, ensure_ascii=False) if log.get('old_values') else '')
        row.append(json.dumps(log['new_values'], default=str, ensure_ascii=False) if log.get('new_values') else '')
    return row


def _csv_cell(value: Any) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def logs_to_csv(logs: List[Dict[str, Any]], include_values: bool = True) -> str:
    """Render logs as CSV; every cell is quoted."""
    headers = CSV_HEADERS + (VALUE_HEADERS if include_values else [])
    lines = [','.join(_csv_cell(h) for h in headers)]
    for log in logs:
        lines.append(','.join(_csv_cell(v) for v in _row_values(log, include_values)))
    return '\n'.join(lines) + '\n'


def logs_to_xlsx(logs: List[Dict[str, Any]], include_values: bool = True) -> bytes:
    """Render logs as an Excel workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Audit Logs'

    header_font = Font(bold=True, color='FFFFFF')
    header_fill = PatternFill(start_color='1A3A5C', end_color='1A3A5C', fill_type='solid')

    headers = CSV_HEADERS + (VALUE_HEADERS if include_values else [])
    ws.append(headers)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', vertical='center')

    for log in logs:
        ws.append(_row_values(log, include_values))

    for column in ws.columns:
        width = max(len(str(cell.value or '')) for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 3, 50)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_audit_logs(filters: Dict[str, Any] = None, fmt: str = 'csv',
                      include_values: bool = True) -> Tuple[Any, str, str, int]:
    """
    Export audit logs.

    Args:
        filters: Same filters as get_audit_logs
        fmt: csv, json or xlsx
        include_values: Include before/after values

    Returns:
        Tuple of (content, mimetype, filename, record_count)

    Raises:
        ValueError: unsupported format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Export format must be one of: {', '.join(EXPORT_FORMATS)}")

    logs = _fetch_for_export(filters)
    filename = f"audit_logs_{get_now().strftime('%Y%m%d_%H%M%S')}.{fmt}"

    if fmt == 'csv':
        content = logs_to_csv(logs, include_values)
    elif fmt == 'xlsx':
        content = logs_to_xlsx(logs, include_values)
    else:
        if not include_values:
            for log in logs:
                log.pop('old_values', None)
                log.pop('new_values', None)
                log.pop('changes', None)
        content = json.dumps({
            'exported_at': get_now().isoformat(),
            'filters': filters or {},
            'count': len(logs),
            'logs': logs
        }, default=str, ensure_ascii=False, indent=2)

    logger.info(f"Exported {len(logs)} audit logs as {fmt}")
    return content, MIME_TYPES[fmt], filename, len(logs)


# =============================================================================
# INTEGRITY / RETENTION / MONITORING
# =============================================================================

def verify_audit_integrity() -> Dict[str, Any]:
    result = verify_integrity()
    if result['invalid']:
        logger.warning(f"Audit integrity check found {result['invalid']} tampered rows")
    return result


def get_retention_status(retention_days: int = None) -> Dict[str, Any]:
    """Retention statistics for the configured (or given) window."""
    days = retention_days or current_app.config.get('AUDIT_RETENTION_DAYS', 365)
    stats = get_retention_stats(days)
    return {
        'total': stats['total_count'],
        'oldest': stats['oldest_log'],
        'newest': stats['newest_log'],
        'expired_count': stats['expired_count'],
        'retention_days': stats['retention_days']
    }


def cleanup_old_logs(days: int = None) -> int:
    """Delete logs past retention; returns the number deleted."""
    days = days or current_app.config.get('AUDIT_RETENTION_DAYS', 365)
    deleted = delete_old_logs(days)
    logger.info(f"Deleted {deleted} audit logs older than {days} days")
    return deleted


def detect_suspicious_access(hours: int = 24, threshold: int = None) -> List[Dict[str, Any]]:
    """
    Users whose audit access in the window exceeds the threshold.

    Returns:
        List of dicts with user_id, username, total_accesses, export_count,
        records_accessed and reasons
    """
    threshold = threshold or current_app.config.get('AUDIT_SUSPICIOUS_THRESHOLD', 50)
    since = (get_now() - timedelta(hours=hours)).strftime('%Y-%m-%d %H:%M:%S')

    suspicious = []
    for stats in get_access_counts_since(since):
        reasons = []
        if stats['total_accesses'] > threshold:
            reasons.append(f"{stats['total_accesses']} audit accesses in {hours}h")
        if stats['export_count'] > threshold:
            reasons.append(f"{stats['export_count']} exports in {hours}h")
        if reasons:
            suspicious.append({**stats, 'reasons': reasons})

    if suspicious:
        logger.warning(f"Suspicious audit access by {len(suspicious)} users")
    return suspicious
