#!/usr/bin/env python
"""
Clone one environment's database onto another.

Environments come from CLONE_PROD_DATABASE, CLONE_TEST_DATABASE and
CLONE_DEV_DATABASE (PostgreSQL URL or SQLite path). Production can never
be the target.

Usage:
    python scripts/clone_environment.py --source prod --target dev
    python scripts/clone_environment.py --source test --target dev --backup
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app  # noqa: E402
from blueprints.admin.services.cloner_service import get_clone_orchestrator  # noqa: E402
from utils.exceptions import CloneError  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description='Clone a LoftBook database between environments',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python scripts/clone_environment.py --source prod --target dev
  python scripts/clone_environment.py --source prod --target test --backup
        '''
    )
    parser.add_argument('--source', required=True, help='Environment to copy from')
    parser.add_argument('--target', required=True, help='Environment to overwrite')
    parser.add_argument('--backup', action='store_true', help='Back up the target first')
    args = parser.parse_args()

    app = create_app(os.environ.get('FLASK_ENV', 'development'))
    with app.app_context():
        orchestrator = get_clone_orchestrator()
        print(f"Configured environments: {', '.join(orchestrator.environments) or '(none)'}")

        try:
            operation_id = orchestrator.start_clone(args.source, args.target, {'backup': args.backup})
        except CloneError as e:
            print(f"Error: {e}")
            sys.exit(1)

        operation = orchestrator.get_status(operation_id)

    for entry in operation['logs']:
        print(f"  [{entry['level'].upper()}] {entry['phase']}: {entry['message']}")

    if operation['status'] != 'completed':
        print(f"\n[FAIL] {operation['error']}")
        sys.exit(1)

    result = operation['result']
    print(f"\n[OK] Cloned {args.source} -> {args.target} in {result['duration']}s "
          f"({result['dump_size']} bytes)")
    for warning in result['warnings']:
        print(f"  [WARN] {warning}")


if __name__ == '__main__':
    main()
