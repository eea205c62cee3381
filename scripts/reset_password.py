#!/usr/bin/env python
"""
Reset a user's password from the command line.

Usage:
    python scripts/reset_password.py --username admin --password 'NewPass123'
    python scripts/reset_password.py --email partner@example.com --password 'NewPass123'
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app  # noqa: E402
from models.user import get_user_by_username, get_user_by_email, update_password  # noqa: E402
from utils.validators import validate_password  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description='Reset a LoftBook user password')
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--username', type=str, help='Username of the account')
    target.add_argument('--email', type=str, help='Email of the account')
    parser.add_argument('--password', type=str, required=True, help='New password')
    args = parser.parse_args()

    is_valid, error = validate_password(args.password)
    if not is_valid:
        print(f"Error: {error}")
        sys.exit(1)

    app = create_app(os.environ.get('FLASK_ENV', 'development'))
    with app.app_context():
        user = get_user_by_username(args.username) if args.username else get_user_by_email(args.email)
        if not user:
            print(f"Error: User not found: {args.username or args.email}")
            sys.exit(1)

        update_password(user['id'], args.password)
        print(f"[OK] Password updated for {user['username']} (id={user['id']})")


if __name__ == '__main__':
    main()
