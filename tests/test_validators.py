"""
Tests for input validation and text helpers.
"""

import re

from utils.validators import (
    validate_email,
    validate_phone,
    validate_date_range,
    validate_password,
    validate_date_format,
    sanitize_input,
    is_valid_uuid,
    validate_transaction_id,
    sanitize_uuid
)
from utils.helpers import truncate_text, split_full_name, generate_unique_code


class TestValidateEmail:
    """Tests for email validation."""

    def test_valid_email(self):
        assert validate_email('user@example.com') is True
        assert validate_email('user.name@example.com') is True
        assert validate_email('user+tag@example.co.uk') is True

    def test_invalid_email(self):
        assert validate_email('') is False
        assert validate_email(None) is False
        assert validate_email('invalid') is False
        assert validate_email('missing@domain') is False
        assert validate_email('@nodomain.com') is False
        assert validate_email('spaces in@email.com') is False


class TestValidatePhone:
    """Tests for international phone validation."""

    def test_valid_phones(self):
        assert validate_phone('+213555123456') is True
        assert validate_phone('0555123456') is True
        assert validate_phone('+33 6 12 34 56 78') is True
        assert validate_phone('(021) 69-12-34') is True

    def test_invalid_phones(self):
        assert validate_phone('') is False
        assert validate_phone(None) is False
        assert validate_phone('12345') is False  # Too short
        assert validate_phone('abc123456789') is False
        assert validate_phone('+1234567890123456') is False  # Too long


class TestValidateDateRange:
    """End date must be strictly after start date."""

    def test_valid_date_range(self):
        assert validate_date_range('2025-01-01', '2025-01-05') is True
        assert validate_date_range('2024-12-31', '2025-01-01') is True

    def test_same_day_is_invalid(self):
        assert validate_date_range('2025-01-01', '2025-01-01') is False

    def test_invalid_date_range(self):
        assert validate_date_range('2025-01-05', '2025-01-01') is False
        assert validate_date_range('01-01-2025', '05-01-2025') is False
        assert validate_date_range(None, '2025-01-01') is False


class TestValidatePassword:
    """Tests for password strength validation."""

    def test_valid_password(self):
        assert validate_password('Secure123') == (True, '')

    def test_missing_password(self):
        assert validate_password('') == (False, 'Password is required')

    def test_too_short(self):
        is_valid, error = validate_password('Ab1')
        assert is_valid is False
        assert 'at least 8' in error

    def test_character_classes(self):
        assert validate_password('lowercase123')[1] == 'Password must contain at least one uppercase letter'
        assert validate_password('UPPERCASE123')[1] == 'Password must contain at least one lowercase letter'
        assert validate_password('NoDigitsHere')[1] == 'Password must contain at least one number'


class TestValidateDateFormat:

    def test_formats(self):
        assert validate_date_format('2025-06-15') is True
        assert validate_date_format('15/06/2025') is False
        assert validate_date_format('2025-13-01') is False
        assert validate_date_format(None) is False


class TestSanitizeInput:

    def test_trims_and_limits(self):
        assert sanitize_input('  hello  ') == 'hello'
        assert sanitize_input('abcdef', max_length=3) == 'abc'
        assert sanitize_input(None) == ''


class TestUuidValidation:
    """Tests for UUID and transaction ID validation."""

    VALID = '123e4567-e89b-12d3-a456-426614174000'

    def test_is_valid_uuid(self):
        assert is_valid_uuid(self.VALID) is True
        assert is_valid_uuid(self.VALID.upper()) is True
        assert is_valid_uuid(f'  {self.VALID}  ') is True
        assert is_valid_uuid('not-a-uuid') is False
        assert is_valid_uuid('123e4567e89b12d3a456426614174000') is False
        assert is_valid_uuid(12345) is False
        assert is_valid_uuid(None) is False

    def test_validate_transaction_id(self):
        assert validate_transaction_id(self.VALID) == {'is_valid': True, 'error': None}
        assert validate_transaction_id(None)['error'] == 'Transaction ID is required'
        assert validate_transaction_id('   ')['error'] == 'Transaction ID is required'
        assert validate_transaction_id(42)['error'] == 'Transaction ID must be a string'
        assert validate_transaction_id('abc')['error'] == 'Invalid transaction ID format'

    def test_sanitize_uuid(self):
        assert sanitize_uuid(f' {self.VALID.upper()} ') == self.VALID
        assert sanitize_uuid('abc') is None


class TestTruncateText:
    """Tests for word-aware truncation."""

    def test_short_text_unchanged(self):
        assert truncate_text('Short text', 20) == 'Short text'

    def test_empty_and_zero_length(self):
        assert truncate_text('', 10) == ''
        assert truncate_text(None, 10) == ''
        assert truncate_text('Some text', 0) == ''

    def test_never_exceeds_max_length(self):
        text = 'The quick brown fox jumps over the lazy dog'
        for max_length in range(1, len(text)):
            assert len(truncate_text(text, max_length)) <= max_length

    def test_cuts_on_word_boundary(self):
        result = truncate_text('Beautiful loft with terrace view', 24)
        assert result == 'Beautiful loft with...'

    def test_cuts_mid_word_when_no_close_boundary(self):
        result = truncate_text('Supercalifragilistic expialidocious', 10)
        assert result == 'Superca...'

    def test_suffix_longer_than_room(self):
        assert truncate_text('Hello world', 2) == '..'

    def test_custom_suffix(self):
        assert truncate_text('Hello wonderful world', 18, suffix='~') == 'Hello wonderful~'


class TestHelpers:

    def test_split_full_name(self):
        assert split_full_name('Amina Benali') == ('Amina', 'Benali')
        assert split_full_name('Jean Pierre Martin') == ('Jean', 'Pierre Martin')
        assert split_full_name('Madonna') == ('Madonna', '')
        assert split_full_name('') == ('', '')

    def test_generate_unique_code(self):
        assert re.match(r'^[A-Z0-9]{8}$', generate_unique_code())
        assert re.match(r'^LB-[A-Z0-9]{4}$', generate_unique_code('LB', 4))
