"""
Pricing rule data access functions.
Rules adjust a loft's nightly rate (seasonal, weekend, holiday, event) or
the stay subtotal (length_of_stay, advance_booking).
"""

from database import get_db

RULE_FIELDS = [
    'rule_name', 'rule_type', 'start_date', 'end_date', 'days_of_week',
    'minimum_nights', 'maximum_nights', 'advance_booking_days',
    'adjustment_type', 'adjustment_value', 'priority', 'is_active'
]


def _row_to_rule(row) -> dict:
    rule = dict(row)
    days = rule.get('days_of_week')
    rule['days_of_week'] = [int(d) for d in days.split(',') if d != ''] if days else []
    rule['is_active'] = bool(rule.get('is_active'))
    return rule


def _encode(field: str, value):
    if field == 'days_of_week' and value is not None and not isinstance(value, str):
        return ','.join(str(int(d)) for d in value)
    if field == 'is_active' and value is not None:
        return 1 if value else 0
    return value


def get_pricing_rules(loft_id: int, active_only: bool = False) -> list:
    """
    Get a loft's pricing rules.

    Args:
        loft_id: Loft ID
        active_only: Only active rules

    Returns:
        List of rule dicts, highest priority first
    """
    query = 'SELECT * FROM pricing_rules WHERE loft_id = ?'
    if active_only:
        query += ' AND is_active = 1'
    query += ' ORDER BY priority DESC, id'

    with get_db() as conn:
        return [_row_to_rule(row) for row in conn.execute(query, (loft_id,)).fetchall()]


def get_pricing_rule_by_id(rule_id: int) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM pricing_rules WHERE id = ?', (rule_id,)).fetchone()
        return _row_to_rule(row) if row else None


def create_pricing_rule(loft_id: int, **data) -> int:
    """
    Create a pricing rule. Callers validate first (validate_pricing_rule).

    Returns:
        New rule ID
    """
    fields = [field for field in RULE_FIELDS if field in data]
    values = [_encode(field, data[field]) for field in fields]

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f'''
            INSERT INTO pricing_rules (loft_id, {", ".join(fields)})
            VALUES (?, {", ".join("?" * len(fields))})
        ''', [loft_id] + values)
        return cursor.lastrowid


def update_pricing_rule(rule_id: int, **data) -> bool:
    """Update rule fields; returns True if a row changed."""
    fields = [field for field in RULE_FIELDS if field in data]
    if not fields:
        return False

    updates = [f'{field} = ?' for field in fields] + ['updated_at = CURRENT_TIMESTAMP']
    values = [_encode(field, data[field]) for field in fields] + [rule_id]

    with get_db() as conn:
        cursor = conn.execute(f'UPDATE pricing_rules SET {", ".join(updates)} WHERE id = ?', values)
        return cursor.rowcount > 0


def delete_pricing_rule(rule_id: int) -> bool:
    with get_db() as conn:
        cursor = conn.execute('DELETE FROM pricing_rules WHERE id = ?', (rule_id,))
        return cursor.rowcount > 0
