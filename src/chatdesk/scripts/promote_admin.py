"""Grant or revoke the admin role from the command line."""
from __future__ import annotations

import argparse
import sys

from chatdesk.db.session import SessionLocal
from chatdesk.models import ROLE_ADMIN, ROLE_USER
from chatdesk.services.user_service import get_user_by_email


def set_role(email: str, role: str) -> bool:
    """Set the role of the account registered with ``email``.

    Returns:
        False if no such account exists
    """
    with SessionLocal() as db:
        user = get_user_by_email(db, email)
        if user is None:
            return False
        user.role = role
        db.commit()
        return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Promote an account to admin.")
    parser.add_argument("email", help="Email address of the account")
    parser.add_argument("--revoke", action="store_true", help="Demote the account to a regular user")
    args = parser.parse_args(argv)

    role = ROLE_USER if args.revoke else ROLE_ADMIN
    if not set_role(args.email, role):
        print(f"[promote-admin] No account registered with {args.email}", file=sys.stderr)
        return 1
    print(f"[promote-admin] {args.email} is now {role}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
