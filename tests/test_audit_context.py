"""
Tests for named database procedures and the session audit context.
"""

import pytest
from unittest.mock import patch

from database.rpc import call_rpc, register_rpc, unregister_rpc, rpc_exists, RpcError, RpcNotFoundError


class TestRpcRegistry:

    def test_call_registered_procedure(self, app):
        @register_rpc('test.double')
        def double(p_value):
            return p_value * 2

        try:
            assert rpc_exists('test.double')
            assert call_rpc('test.double', p_value=21) == 42
        finally:
            unregister_rpc('test.double')
        assert not rpc_exists('test.double')

    def test_unknown_procedure(self, app):
        with pytest.raises(RpcNotFoundError, match='Could not find the function nope'):
            call_rpc('nope')

    def test_failures_are_wrapped(self, app):
        @register_rpc('test.explode')
        def explode():
            raise ZeroDivisionError('boom')

        try:
            with pytest.raises(RpcError, match='test.explode: boom') as exc_info:
                call_rpc('test.explode')
            assert isinstance(exc_info.value.__cause__, ZeroDivisionError)
        finally:
            unregister_rpc('test.explode')

    def test_booking_procedures(self, app, loft, stay_dates):
        check_in, check_out = stay_dates

        assert call_rpc('check_loft_availability', p_loft_id=loft['id'],
                        p_check_in=check_in, p_check_out=check_out) is True
        assert call_rpc('cleanup_expired_reservation_locks') == 0
        assert call_rpc('verify_audit_logs_integrity')['invalid'] == 0


class TestAuditContext:

    def test_set_get_clear(self, app):
        from blueprints.lofts.services.audit_context import (
            set_audit_context, get_audit_context, clear_audit_context
        )

        assert set_audit_context(1, 'admin@loftbook.local', '10.0.0.5') is True
        assert get_audit_context() == {
            'audit.current_user_id': '1',
            'audit.user_email': 'admin@loftbook.local',
            'audit.ip_address': '10.0.0.5'
        }

        assert clear_audit_context() is True
        assert get_audit_context() == {}

    def test_qualified_name_is_preferred(self, app):
        from blueprints.lofts.services.audit_context import set_audit_context

        calls = []

        @register_rpc('audit.set_audit_user_context')
        def qualified(**params):
            calls.append(params['p_user_id'])
            return True

        try:
            assert set_audit_context(5) is True
            assert calls == [5]
        finally:
            unregister_rpc('audit.set_audit_user_context')

    def test_failure_returns_false(self, app):
        from blueprints.lofts.services.audit_context import set_audit_context, get_audit_context

        with patch('blueprints.lofts.services.audit_context.call_rpc', side_effect=RpcError('down')):
            assert set_audit_context(1) is False
            assert get_audit_context() == {}

    def test_writes_outside_requests_use_context(self, app):
        from blueprints.lofts.services.audit_context import set_audit_context, clear_audit_context
        from models.audit_log import get_audit_log_by_id
        from utils.audit import log_audit

        set_audit_context(1, 'admin@loftbook.local', '10.0.0.5', 'loftbook-cli')
        try:
            log_id = log_audit('UPDATE', 'loft', 3, before={'status': 'available'}, after={'status': 'maintenance'})
        finally:
            clear_audit_context()

        log = get_audit_log_by_id(log_id)
        assert log['user_id'] == 1
        assert log['user_email'] == 'admin@loftbook.local'
        assert log['ip_address'] == '10.0.0.5'
        assert log['user_agent'] == 'loftbook-cli'

    def test_without_context_writes_are_anonymous(self, app):
        from models.audit_log import get_audit_log_by_id
        from utils.audit import log_audit

        log = get_audit_log_by_id(log_audit('DELETE', 'loft', 3))
        assert log['user_id'] is None
        assert log['ip_address'] is None

    def test_with_audit_context_clears_on_error(self, app):
        from blueprints.lofts.services.audit_context import with_audit_context, get_audit_context, set_audit_context

        @with_audit_context
        def failing():
            raise ValueError('rejected')

        set_audit_context(1)
        with pytest.raises(ValueError):
            failing()
        assert get_audit_context() == {}

    def test_context_from_request(self, app):
        from flask_login import login_user
        from blueprints.lofts.services.audit_context import set_audit_context_from_request, get_audit_context
        from models.user import User, get_user_by_id

        with app.test_request_context('/api/lofts', headers={
            'X-Forwarded-For': '203.0.113.9, 10.0.0.1',
            'User-Agent': 'pytest'
        }):
            assert set_audit_context_from_request() is False

            login_user(User(get_user_by_id(1)))
            assert set_audit_context_from_request() is True
            context = get_audit_context()

        assert context['audit.current_user_id'] == '1'
        assert context['audit.ip_address'] == '203.0.113.9'
        assert context['audit.user_agent'] == 'pytest'
