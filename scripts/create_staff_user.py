#!/usr/bin/env python3
"""Create (or update) a staff user and print a bearer token for the API.

Usage example:

  python scripts/create_staff_user.py --email admin@example.com --name "Help Desk" --role ADMIN

The token is signed with AUTH_JWT_SECRET_KEY; use it as
`Authorization: Bearer <token>` against /api/tickets and /api/admin routes.
"""

from __future__ import annotations

import argparse
import sys
import uuid

from informejo.c1_database_session.database_manager import get_database_manager
from informejo.c1_ticket_enums.ticket_enums import UserRole
from informejo.c1_user_models.user import User
from informejo.c2_auth_service.auth_service import create_staff_token


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an Informejo staff user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--role", choices=[UserRole.ADMIN.value, UserRole.USER.value], default=UserRole.USER.value)
    parser.add_argument("--db", default=None, help="SQLite database path")
    args = parser.parse_args()

    manager = get_database_manager(args.db)
    manager.create_tables()

    with manager.session_scope() as db:
        user = db.query(User).filter_by(email=args.email.lower()).first()
        if user is None:
            user = User(id=str(uuid.uuid4()), email=args.email.lower(), name=args.name, role=args.role)
            db.add(user)
            print(f"[staff] Created {args.role} {args.email}")
        else:
            user.name = args.name
            user.role = args.role
            user.is_active = True
            print(f"[staff] Updated {args.email} to {args.role}")
        db.flush()
        token = create_staff_token(user)

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
