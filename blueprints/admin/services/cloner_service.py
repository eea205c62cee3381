"""
Database Cloner Service - Copy one environment's database onto another.

Handles:
- A process-wide orchestrator allowing a single clone at a time
- PostgreSQL clones through pg_dump / psql
- SQLite clones through the sqlite3 backup API
- Optional backup of the target before it is overwritten
- In-memory operation status, progress and logs

Usage:
    orchestrator = get_clone_orchestrator()
    operation_id = orchestrator.start_clone('prod', 'dev', {'backup': True})
    orchestrator.get_status(operation_id)
"""

import logging
import os
import shutil
import sqlite3
import subprocess
import tempfile
import threading
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from flask import current_app

from utils.exceptions import CloneError, CloneInProgressError, ProductionProtectionError

logger = logging.getLogger(__name__)

POSTGRES_SCHEMES = ('postgres', 'postgresql')

LogCallback = Callable[[str, str, str], None]


def _new_result() -> Dict[str, Any]:
    return {'success': False, 'duration': 0.0, 'dump_size': 0, 'errors': [], 'warnings': []}


def is_postgres_url(value: str) -> bool:
    return urlparse(value or '').scheme in POSTGRES_SCHEMES


# =============================================================================
# POSTGRES
# =============================================================================

class PgDumpCloner:
    """
    Clone a PostgreSQL database with pg_dump and psql.

    System schemas (auth, storage) are dumped data-only with INSERTs so they
    load into the target's existing system tables; user schemas are dumped
    with schema and data.
    """

    SYSTEM_SCHEMAS = ('auth', 'storage')

    EXCLUDED_SCHEMAS = (
        'auth', 'storage', 'realtime', 'extensions', 'graphql', 'graphql_public',
        'vault', 'pgbouncer', 'pgsodium', 'pgsodium_masks',
    )

    # Transient or version-specific system tables
    EXCLUDED_SYSTEM_TABLES = (
        'auth.schema_migrations', 'auth.sessions', 'auth.refresh_tokens',
        'auth.mfa_amr_claims', 'auth.mfa_challenges', 'auth.mfa_factors',
        'auth.flow_state', 'auth.one_time_tokens', 'auth.audit_log_entries',
        'auth.sso_providers', 'auth.sso_domains', 'auth.saml_providers',
        'auth.saml_relay_states',
    )

    RESET_SQL = (
        'DROP SCHEMA IF EXISTS public CASCADE; '
        'CREATE SCHEMA public; '
        'GRANT USAGE ON SCHEMA public TO PUBLIC; '
        'GRANT ALL ON SCHEMA public TO CURRENT_USER;'
    )

    def __init__(self, source_url: str, target_url: str, log: Optional[LogCallback] = None,
                 temp_dir: Optional[str] = None):
        self.source_url = source_url
        self.target_url = target_url
        self._log_callback = log
        self.temp_dir = temp_dir or tempfile.mkdtemp(prefix='loftbook-clone-')
        self._files: List[str] = []

    def _log(self, level: str, phase: str, message: str) -> None:
        if self._log_callback:
            self._log_callback(level, phase, message)
        else:
            getattr(logger, 'warning' if level == 'warning' else 'error' if level == 'error' else 'info')(
                f"[{phase}] {message}")

    def _run(self, args: List[str], input_text: str = None) -> subprocess.CompletedProcess:
        """Run a client tool; raise CloneError on a non-zero exit."""
        try:
            result = subprocess.run(args, input=input_text, capture_output=True, text=True)
        except FileNotFoundError:
            raise CloneError(
                f'{args[0]} not found. Please ensure the PostgreSQL client tools are installed and on PATH.'
            )

        if result.returncode != 0:
            raise CloneError(f'{args[0]} exited with code {result.returncode}\n{result.stderr.strip()}')
        return result

    def _temp_file(self, name: str) -> str:
        path = os.path.join(self.temp_dir, f'{name}_{int(time.time() * 1000)}.sql')
        self._files.append(path)
        return path

    def verify_tools(self) -> str:
        """Check pg_dump is available; returns its version string."""
        version = self._run(['pg_dump', '--version']).stdout.strip()
        self._log('info', 'Verification', f'pg_dump found: {version}')
        return version

    def dump_system_schemas(self) -> str:
        """Data-only dump of the auth and storage schemas."""
        path = self._temp_file('dump_system')
        args = ['pg_dump', '--dbname', self.source_url, '--data-only', '--inserts',
                '--no-owner', '--no-privileges']
        for schema in self.SYSTEM_SCHEMAS:
            args += ['--schema', schema]
        for table in self.EXCLUDED_SYSTEM_TABLES:
            args += ['--exclude-table', table]
        args += ['--file', path]

        self._log('info', 'Dumping', 'Dumping system schemas (auth, storage) data...')
        self._run(args)
        return path

    def dump_user_schemas(self) -> str:
        """Schema and data dump of everything outside the managed schemas."""
        path = self._temp_file('dump_user')
        args = ['pg_dump', '--dbname', self.source_url, '--no-owner', '--no-privileges']
        for schema in self.EXCLUDED_SCHEMAS:
            args += ['--exclude-schema', schema]
        args += ['--file', path]

        self._log('info', 'Dumping', 'Dumping user schemas (public, ...)...')
        self._run(args)
        return path

    def reset_target(self) -> None:
        """Drop and recreate the target's public schema."""
        self._log('info', 'Resetting', 'Resetting target public schema...')
        self._run(['psql', '--dbname', self.target_url, '-v', 'ON_ERROR_STOP=1'], input_text=self.RESET_SQL)

    def restore(self, dump_file: str) -> None:
        self._log('info', 'Restoring', f'Restoring {os.path.basename(dump_file)}...')
        self._run(['psql', '--dbname', self.target_url, '-v', 'ON_ERROR_STOP=1', '-f', dump_file])

    def backup_target(self, backup_dir: str) -> str:
        """Full dump of the target into backup_dir; returns the file path."""
        os.makedirs(backup_dir, exist_ok=True)
        path = os.path.join(backup_dir, f"backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.sql")
        self._log('info', 'Backup', f'Backing up target to {path}...')
        self._run(['pg_dump', '--dbname', self.target_url, '--no-owner', '--file', path])
        return path

    def verify_target(self) -> bool:
        try:
            self._run(['psql', '--dbname', self.target_url, '-c', 'SELECT 1'])
            return True
        except CloneError as e:
            self._log('warning', 'Validation', f'Target check failed: {e}')
            return False

    def cleanup(self) -> None:
        """Remove temporary dump files."""
        for path in self._files:
            if os.path.exists(path):
                os.remove(path)
        self._files = []
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def clone(self) -> Dict[str, Any]:
        """
        Dump the source, reset the target and restore.

        Returns:
            dict with success, duration (seconds), dump_size (bytes), errors, warnings
        """
        started = time.monotonic()
        result = _new_result()

        try:
            self.verify_tools()
            system_dump = self.dump_system_schemas()
            user_dump = self.dump_user_schemas()
            result['dump_size'] = os.path.getsize(system_dump) + os.path.getsize(user_dump)

            self.reset_target()
            self.restore(system_dump)
            self.restore(user_dump)
            result['success'] = True
            self._log('success', 'Completion', 'Database restored successfully')
        except (CloneError, OSError) as e:
            result['errors'].append(str(e))
            self._log('error', 'Error', f'Clone failed: {e}')
        finally:
            self.cleanup()

        result['duration'] = round(time.monotonic() - started, 3)
        return result


# =============================================================================
# SQLITE
# =============================================================================

class SqliteCloner:
    """Clone a SQLite database file with the sqlite3 backup API."""

    def __init__(self, source_path: str, target_path: str, log: Optional[LogCallback] = None):
        self.source_path = source_path
        self.target_path = target_path
        self._log_callback = log

    def _log(self, level: str, phase: str, message: str) -> None:
        if self._log_callback:
            self._log_callback(level, phase, message)
        else:
            logger.info(f"[{phase}] {message}")

    @staticmethod
    def _copy(source_path: str, target_path: str) -> None:
        target_dir = os.path.dirname(os.path.abspath(target_path))
        os.makedirs(target_dir, exist_ok=True)

        source = sqlite3.connect(source_path)
        target = sqlite3.connect(target_path)
        try:
            source.backup(target)
        finally:
            target.close()
            source.close()

    def verify_tools(self) -> str:
        return sqlite3.sqlite_version

    def backup_target(self, backup_dir: str) -> Optional[str]:
        """Copy the current target into backup_dir; None when there is no target yet."""
        if not os.path.exists(self.target_path):
            self._log('info', 'Backup', 'Target does not exist yet, nothing to back up')
            return None

        name = os.path.splitext(os.path.basename(self.target_path))[0]
        path = os.path.join(backup_dir, f"{name}_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.db")
        self._log('info', 'Backup', f'Backing up target to {path}...')
        self._copy(self.target_path, path)
        return path

    def verify_target(self) -> bool:
        conn = sqlite3.connect(self.target_path)
        try:
            return conn.execute('PRAGMA integrity_check').fetchone()[0] == 'ok'
        finally:
            conn.close()

    def clone(self) -> Dict[str, Any]:
        """
        Copy source onto target.

        Returns:
            dict with success, duration (seconds), dump_size (bytes), errors, warnings
        """
        started = time.monotonic()
        result = _new_result()

        try:
            if not os.path.exists(self.source_path):
                raise CloneError(f'Source database not found: {self.source_path}')
            self._log('info', 'Cloning', f'Copying {self.source_path} -> {self.target_path}')
            self._copy(self.source_path, self.target_path)
            result['dump_size'] = os.path.getsize(self.target_path)
            result['success'] = True
        except (CloneError, sqlite3.Error, OSError) as e:
            result['errors'].append(str(e))
            self._log('error', 'Error', f'Clone failed: {e}')

        result['duration'] = round(time.monotonic() - started, 3)
        return result


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class CloneOrchestrator:
    """
    Run clone operations one at a time.

    The is_cloning flag is guarded by a lock; a timer clears it after
    lock_timeout seconds in case an operation never finishes.
    """

    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self, environments: Dict[str, str] = None, backup_dir: str = 'instance/backups',
                 lock_timeout: int = 1800):
        self.environments = environments or {}
        self.backup_dir = backup_dir
        self.lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._is_cloning = False
        self._timer: Optional[threading.Timer] = None
        self._owner: Optional[str] = None
        self._operations: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def get_instance(cls) -> 'CloneOrchestrator':
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._instance_lock:
            if cls._instance is not None:
                cls._instance.force_release()
            cls._instance = None

    def configure(self, environments: Dict[str, str] = None, backup_dir: str = None,
                  lock_timeout: int = None) -> None:
        if environments is not None:
            self.environments = environments
        if backup_dir:
            self.backup_dir = backup_dir
        if lock_timeout:
            self.lock_timeout = lock_timeout

    # -------------------------------------------------------------------------
    # Lock
    # -------------------------------------------------------------------------

    def is_cloning(self) -> bool:
        with self._lock:
            return self._is_cloning

    def _acquire(self, owner: str = None) -> str:
        """Take the lock for owner (an operation id); returns the owner token."""
        owner = owner or str(uuid.uuid4())
        with self._lock:
            if self._is_cloning:
                raise CloneInProgressError(
                    'A clone operation is already in progress. Please wait for it to complete.'
                )
            self._is_cloning = True
            self._owner = owner
            self._timer = threading.Timer(self.lock_timeout, self._expire, args=(owner,))
            self._timer.daemon = True
            self._timer.start()
        return owner

    def _release(self, owner: str = None) -> bool:
        """Clear the lock; with an owner, only while that owner still holds it."""
        with self._lock:
            if owner is not None and self._owner != owner:
                return False
            self._is_cloning = False
            self._owner = None
            if self._timer:
                self._timer.cancel()
                self._timer = None
            return True

    def _expire(self, owner: str) -> None:
        with self._lock:
            if self._owner != owner:
                return
            self._is_cloning = False
            self._owner = None
            self._timer = None
        logger.warning(f"Clone lock for {owner[:8]} expired after {self.lock_timeout}s, releasing")

    def force_release(self) -> bool:
        """Clear the lock; returns whether it was held."""
        was_cloning = self.is_cloning()
        self._release()
        if was_cloning:
            logger.warning("Clone lock force-released")
        return was_cloning

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _log(self, operation: Dict[str, Any], level: str, phase: str, message: str) -> None:
        operation['logs'].append({
            'timestamp': datetime.now().isoformat(timespec='seconds'),
            'level': level,
            'phase': phase,
            'message': message
        })
        log_level = {'error': logging.ERROR, 'warning': logging.WARNING}.get(level, logging.INFO)
        logger.log(log_level, f"[Clone {operation['id'][:8]}] [{phase}] {message}")

    def validate_environments(self, source_env: str, target_env: str) -> None:
        """
        Raises:
            ProductionProtectionError: target is a production environment
            CloneError: unknown, identical, or misconfigured environments
        """
        if source_env not in self.environments:
            raise CloneError(f'Unknown environment: {source_env}')
        if target_env not in self.environments:
            raise CloneError(f'Unknown environment: {target_env}')
        if source_env == target_env:
            raise CloneError('Source and target environments must be different')
        if 'prod' in target_env.lower():
            raise ProductionProtectionError('Cannot clone to production environment')

        source = self.environments[source_env]
        target = self.environments[target_env]
        if not source or not target:
            raise CloneError('Source and target environments must be configured')

        if is_postgres_url(source) != is_postgres_url(target):
            raise CloneError('Source and target must use the same database engine')

        if is_postgres_url(source):
            for name, url in ((source_env, source), (target_env, target)):
                parsed = urlparse(url)
                if not parsed.hostname or not parsed.username:
                    raise CloneError(f'Missing credentials for {name} environment')
        elif not os.path.exists(source):
            raise CloneError(f'Source database not found: {source}')

    def _make_cloner(self, operation: Dict[str, Any]):
        source = self.environments[operation['source']]
        target = self.environments[operation['target']]

        def log(level, phase, message):
            self._log(operation, level, phase, message)

        if is_postgres_url(source):
            return PgDumpCloner(source, target, log=log)
        return SqliteCloner(source, target, log=log)

    def start_clone(self, source_env: str, target_env: str, options: Dict[str, Any] = None,
                    run_async: bool = False) -> str:
        """
        Start a clone.

        The lock is taken before the environments are validated, so a busy
        orchestrator answers CloneInProgressError whatever the request.

        Args:
            source_env: Environment to copy from
            target_env: Environment to overwrite
            options: {'backup': bool} backs up the target first
            run_async: Run in a background thread

        Returns:
            Operation ID

        Raises:
            CloneInProgressError: another clone holds the lock
            ProductionProtectionError: target is production
            CloneError: invalid environments
        """
        options = options or {}
        operation_id = self._acquire(str(uuid.uuid4()))
        try:
            self.validate_environments(source_env, target_env)
        except Exception:
            self._release(operation_id)
            raise

        operation = {
            'id': operation_id,
            'source': source_env,
            'target': target_env,
            'options': options,
            'status': 'pending',
            'progress': 0,
            'logs': [],
            'result': None,
            'error': None,
            'started_at': datetime.now().isoformat(timespec='seconds'),
            'completed_at': None
        }
        self._operations[operation_id] = operation
        self._log(operation, 'info', 'Validation', f'Environments validated: {source_env} -> {target_env}')
        operation['progress'] = 10

        if run_async:
            thread = threading.Thread(target=self._run, args=(operation,), daemon=True)
            thread.start()
        else:
            self._run(operation)

        return operation_id

    def _run(self, operation: Dict[str, Any]) -> None:
        operation['status'] = 'running'
        try:
            cloner = self._make_cloner(operation)

            if operation['options'].get('backup'):
                backup_path = cloner.backup_target(self.backup_dir)
                operation['backup_path'] = backup_path
            operation['progress'] = 20

            self._log(operation, 'info', 'Cloning', 'Cloning database...')
            result = cloner.clone()
            operation['result'] = result
            if not result['success']:
                raise CloneError('; '.join(result['errors']) or 'Clone failed')
            operation['progress'] = 95

            if not cloner.verify_target():
                result['warnings'].append('Target validation failed after clone')
                self._log(operation, 'warning', 'Validation', 'Target validation failed after clone')

            operation['progress'] = 100
            operation['status'] = 'completed'
            self._log(operation, 'success', 'Completion', f"Clone completed in {result['duration']}s")
        except Exception as e:
            operation['status'] = 'failed'
            operation['error'] = str(e)
            self._log(operation, 'error', 'Error', f'Clone failed: {e}')
        finally:
            operation['completed_at'] = datetime.now().isoformat(timespec='seconds')
            if not self._release(operation['id']):
                self._log(operation, 'warning', 'Completion', 'Clone lock had already expired')

    def get_status(self, operation_id: str) -> Optional[Dict[str, Any]]:
        operation = self._operations.get(operation_id)
        if operation is None:
            return None
        return {**operation, 'logs': list(operation['logs'])}

    def list_operations(self) -> List[Dict[str, Any]]:
        """Operations newest first, without their logs."""
        operations = sorted(self._operations.values(), key=lambda op: op['started_at'], reverse=True)
        return [{k: v for k, v in op.items() if k != 'logs'} for op in operations]


def get_clone_orchestrator() -> CloneOrchestrator:
    """The process-wide orchestrator, configured from the current app."""
    orchestrator = CloneOrchestrator.get_instance()
    orchestrator.configure(
        environments=current_app.config.get('CLONE_ENVIRONMENTS', {}),
        backup_dir=current_app.config.get('CLONE_BACKUP_DIR'),
        lock_timeout=current_app.config.get('CLONE_LOCK_TIMEOUT_SECONDS')
    )
    return orchestrator
