"""
Loft model and data access functions.
Handles loft CRUD, partner scoping and catalog search.
"""

import json
from database import get_db

LOFT_STATUSES = ('available', 'occupied', 'maintenance')

LOFT_FIELDS = [
    'name', 'address', 'description', 'price_per_month', 'price_per_night',
    'cleaning_fee', 'tax_rate', 'currency_code', 'status', 'owner_id', 'partner_id',
    'company_percentage', 'owner_percentage', 'zone_area_id', 'max_guests',
    'bedrooms', 'bathrooms', 'area_sqm', 'amenities', 'is_published',
    'minimum_stay', 'maximum_stay'
]

LOFT_SELECT = '''
    SELECT l.*, o.name as owner_name, o.ownership_type,
           z.name as zone_name, z.city as city,
           u.full_name as partner_name
    FROM lofts l
    LEFT JOIN loft_owners o ON l.owner_id = o.id
    LEFT JOIN zone_areas z ON l.zone_area_id = z.id
    LEFT JOIN users u ON l.partner_id = u.id
'''


def _row_to_loft(row) -> dict:
    """Convert a row to a dict with amenities decoded."""
    loft = dict(row)
    try:
        loft['amenities'] = json.loads(loft['amenities']) if loft.get('amenities') else []
    except (TypeError, ValueError):
        loft['amenities'] = []
    return loft


def _encode(field: str, value):
    if field == 'amenities' and value is not None and not isinstance(value, str):
        return json.dumps(list(value), ensure_ascii=False)
    if field == 'is_published' and value is not None:
        return 1 if value else 0
    return value


def validate_loft_data(data: dict, partial: bool = False) -> list:
    """
    Validate loft fields.

    Args:
        data: Field dict
        partial: When True only the provided fields are checked

    Returns:
        List of error messages (empty when valid)
    """
    errors = []

    for field, label in (('name', 'Name'), ('address', 'Address')):
        if partial and field not in data:
            continue
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            errors.append(f'{label} must be text')
        elif not (value or '').strip():
            errors.append(f'{label} is required')

    if 'status' in data and data['status'] not in LOFT_STATUSES:
        errors.append(f"Status must be one of: {', '.join(LOFT_STATUSES)}")

    for field in ('price_per_night', 'price_per_month', 'cleaning_fee'):
        value = data.get(field)
        if value is None:
            continue
        try:
            if float(value) < 0:
                errors.append(f'{field} cannot be negative')
        except (TypeError, ValueError):
            errors.append(f'{field} must be a number')

    if 'tax_rate' in data and data['tax_rate'] is not None:
        try:
            if not 0 <= float(data['tax_rate']) <= 1:
                errors.append('tax_rate must be between 0 and 1')
        except (TypeError, ValueError):
            errors.append('tax_rate must be a number')

    if 'company_percentage' in data or 'owner_percentage' in data:
        try:
            company = float(data.get('company_percentage', 50))
            owner = float(data.get('owner_percentage', 50))
            if abs(company + owner - 100) > 0.001:
                errors.append('Company and owner percentages must add up to 100')
        except (TypeError, ValueError):
            errors.append('Percentages must be numbers')

    for field in ('max_guests', 'minimum_stay'):
        if field in data and data[field] is not None:
            try:
                if int(data[field]) < 1:
                    errors.append(f'{field} must be at least 1')
            except (TypeError, ValueError):
                errors.append(f'{field} must be an integer')

    if data.get('maximum_stay') is not None:
        try:
            if int(data['maximum_stay']) < int(data.get('minimum_stay') or 1):
                errors.append('maximum_stay cannot be lower than minimum_stay')
        except (TypeError, ValueError):
            errors.append('maximum_stay must be an integer')

    return errors


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_loft_by_id(loft_id: int) -> dict:
    """
    Get loft by ID with owner, zone and partner names.

    Args:
        loft_id: Loft ID

    Returns:
        Loft dict or None if not found
    """
    with get_db() as conn:
        row = conn.execute(LOFT_SELECT + ' WHERE l.id = ?', (loft_id,)).fetchone()
        return _row_to_loft(row) if row else None


def get_all_lofts(partner_id: int = None, status: str = None, published_only: bool = False) -> list:
    """
    Get lofts with optional filters.

    Args:
        partner_id: Only lofts managed by this partner
        status: Only lofts in this status
        published_only: Only published lofts

    Returns:
        List of loft dicts ordered by name
    """
    query = LOFT_SELECT + ' WHERE 1=1'
    params = []

    if partner_id is not None:
        query += ' AND l.partner_id = ?'
        params.append(partner_id)

    if status:
        query += ' AND l.status = ?'
        params.append(status)

    if published_only:
        query += ' AND l.is_published = 1'

    query += ' ORDER BY l.name'

    with get_db() as conn:
        return [_row_to_loft(row) for row in conn.execute(query, params).fetchall()]


def search_lofts(city: str = None, zone_area_id: int = None, guests: int = None,
                 min_price: float = None, max_price: float = None, query: str = None) -> list:
    """
    Catalog search over published, available lofts.

    Args:
        city: Zone city (case-insensitive)
        zone_area_id: Zone area ID
        guests: Minimum guest capacity
        min_price: Minimum nightly price
        max_price: Maximum nightly price
        query: Free text matched against name, address and description

    Returns:
        List of loft dicts ordered by nightly price
    """
    sql = LOFT_SELECT + " WHERE l.is_published = 1 AND l.status = 'available'"
    params = []

    if city:
        sql += ' AND LOWER(z.city) = LOWER(?)'
        params.append(city)

    if zone_area_id:
        sql += ' AND l.zone_area_id = ?'
        params.append(zone_area_id)

    if guests:
        sql += ' AND l.max_guests >= ?'
        params.append(guests)

    if min_price is not None:
        sql += ' AND l.price_per_night >= ?'
        params.append(min_price)

    if max_price is not None:
        sql += ' AND l.price_per_night <= ?'
        params.append(max_price)

    if query:
        term = f'%{query}%'
        sql += ' AND (l.name LIKE ? OR l.address LIKE ? OR l.description LIKE ?)'
        params.extend([term, term, term])

    sql += ' ORDER BY l.price_per_night, l.name'

    with get_db() as conn:
        return [_row_to_loft(row) for row in conn.execute(sql, params).fetchall()]


def count_lofts(partner_id: int = None) -> int:
    query = 'SELECT COUNT(*) as count FROM lofts'
    params = []
    if partner_id is not None:
        query += ' WHERE partner_id = ?'
        params.append(partner_id)
    with get_db() as conn:
        return conn.execute(query, params).fetchone()['count']


# =============================================================================
# WRITE OPERATIONS
# =============================================================================

def create_loft(**data) -> int:
    """
    Create a loft.

    Args:
        **data: Any of LOFT_FIELDS; name and address are required

    Returns:
        New loft ID

    Raises:
        ValueError: validation failed
    """
    errors = validate_loft_data(data)
    if errors:
        raise ValueError('; '.join(errors))

    fields = [field for field in LOFT_FIELDS if field in data]
    values = [_encode(field, data[field]) for field in fields]
    placeholders = ', '.join('?' * len(fields))

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            f'INSERT INTO lofts ({", ".join(fields)}) VALUES ({placeholders})',
            values
        )
        return cursor.lastrowid


def update_loft(loft_id: int, **kwargs) -> bool:
    """
    Update loft fields.

    Args:
        loft_id: Loft ID
        **kwargs: Any of LOFT_FIELDS

    Returns:
        True if updated successfully

    Raises:
        ValueError: validation failed
    """
    data = {field: kwargs[field] for field in LOFT_FIELDS if field in kwargs}
    if not data:
        return False

    if 'company_percentage' in data or 'owner_percentage' in data:
        current = get_loft_by_id(loft_id) or {}
        data.setdefault('company_percentage', current.get('company_percentage', 50))
        data.setdefault('owner_percentage', current.get('owner_percentage', 50))

    # Stay limits are checked as a pair
    if 'minimum_stay' in data or 'maximum_stay' in data:
        current = get_loft_by_id(loft_id) or {}
        data.setdefault('minimum_stay', current.get('minimum_stay', 1))
        data.setdefault('maximum_stay', current.get('maximum_stay'))

    errors = validate_loft_data(data, partial=True)
    if errors:
        raise ValueError('; '.join(errors))

    updates = [f'{field} = ?' for field in data]
    values = [_encode(field, value) for field, value in data.items()]
    updates.append('updated_at = CURRENT_TIMESTAMP')
    values.append(loft_id)

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f'UPDATE lofts SET {", ".join(updates)} WHERE id = ?', values)
        return cursor.rowcount > 0


def delete_loft(loft_id: int) -> bool:
    """
    Delete a loft that has never been booked.

    Lofts with reservation history are unpublished instead.

    Raises:
        ValueError: loft has reservations
    """
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            SELECT
                SUM(CASE WHEN status IN ('pending', 'confirmed') THEN 1 ELSE 0 END) as active,
                COUNT(*) as total
            FROM reservations WHERE loft_id = ?
        ''', (loft_id,))
        counts = cursor.fetchone()
        if counts['active']:
            raise ValueError('Cannot delete a loft with active reservations')
        if counts['total']:
            raise ValueError('Cannot delete a loft with reservation history; unpublish it instead')

        cursor.execute('DELETE FROM lofts WHERE id = ?', (loft_id,))
        return cursor.rowcount > 0
