"""
Currency data access functions.
Ratios are expressed relative to the default currency (ratio 1).
"""

from database import get_db


def get_all_currencies() -> list:
    with get_db() as conn:
        rows = conn.execute('SELECT * FROM currencies ORDER BY is_default DESC, code').fetchall()
        return [dict(row) for row in rows]


def get_currency_by_code(code: str) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM currencies WHERE code = ?', ((code or '').upper(),)).fetchone()
        return dict(row) if row else None


def get_currency_by_id(currency_id: int) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM currencies WHERE id = ?', (currency_id,)).fetchone()
        return dict(row) if row else None


def get_default_currency_row() -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM currencies WHERE is_default = 1 LIMIT 1').fetchone()
        return dict(row) if row else None


def upsert_currency(code: str, name: str, symbol: str, ratio: float, is_default: bool = False) -> int:
    """
    Create or update a currency by code.

    Setting is_default clears the flag on every other currency.

    Returns:
        Currency ID
    """
    code = code.upper()
    with get_db() as conn:
        cursor = conn.cursor()
        if is_default:
            cursor.execute('UPDATE currencies SET is_default = 0')
        cursor.execute('''
            INSERT INTO currencies (code, name, symbol, ratio, is_default)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(code) DO UPDATE SET
                name = excluded.name,
                symbol = excluded.symbol,
                ratio = excluded.ratio,
                is_default = excluded.is_default
        ''', (code, name, symbol, ratio, 1 if is_default else 0))
        row = cursor.execute('SELECT id FROM currencies WHERE code = ?', (code,)).fetchone()
        return row['id']
